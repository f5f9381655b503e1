import json
from unittest import TestCase
from urllib.parse import urlsplit

import requests
from flask import Flask
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

BASE_URL = 'http://polls.example.com'


class FlaskAdapter(BaseAdapter):
    """
    Transport adapter dispatching requests to a Flask application instead of the network.
    """

    def __init__(self, app):
        super(FlaskAdapter, self).__init__()
        self.app = app
        self.requests = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        url = urlsplit(request.url)
        headers = {k: v for k, v in request.headers.items() if k.lower() != 'content-length'}

        result = self.app.test_client().open(url.path,
                                             method=request.method,
                                             query_string=url.query,
                                             headers=headers,
                                             data=request.body)

        response = requests.Response()
        response.status_code = result.status_code
        response.reason = result.status
        response.headers = CaseInsensitiveDict(result.headers.items())
        response._content = result.get_data()
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


class FailingAdapter(BaseAdapter):
    def send(self, request, **kwargs):
        raise requests.ConnectionError('Connection refused')

    def close(self):
        pass


def make_response(url, body=None, method='GET', status=200, headers=None, content_type='application/json'):
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.request = requests.Request(method, url).prepare()
    response.headers = CaseInsensitiveDict(headers or {})
    if content_type:
        response.headers.setdefault('Content-Type', content_type)
    if body is None:
        response._content = b''
    elif isinstance(body, bytes):
        response._content = body
    else:
        response._content = json.dumps(body).encode('utf-8')
    return response


def member(name, type_name='string', nested_types=(), value=None, required=False):
    return {
        "class": "property",
        "content": {
            "name": {"literal": name},
            "description": "",
            "valueDefinition": {
                "values": [{"literal": value}] if value is not None else [],
                "typeDefinition": {
                    "typeSpecification": {
                        "name": type_name,
                        "nestedTypes": [{"literal": n} for n in nested_types]
                    },
                    "attributes": ["required"] if required else []
                }
            },
            "sections": []
        }
    }


def data_structure(name, members=(), type_name='object', nested_types=()):
    structure = {
        "element": "dataStructure",
        "name": {"literal": name},
        "typeDefinition": {
            "typeSpecification": {
                "name": type_name,
                "nestedTypes": [{"literal": n} for n in nested_types]
            },
            "attributes": []
        },
        "sections": []
    }
    if members:
        structure["sections"].append({"class": "memberType", "content": list(members)})
    return structure


def parameter(name, example='', default='', required=True, type='string'):
    return {
        "name": name,
        "description": "",
        "type": type,
        "required": required,
        "default": default,
        "example": example,
        "values": []
    }


def action(method, relation='', uri_template='', parameters=(), content_type=None, attributes=()):
    requests_ = []
    if content_type or attributes:
        request = {"name": "", "description": "", "headers": [], "body": "", "schema": "", "content": []}
        if content_type:
            request["headers"].append({"name": "Content-Type", "value": content_type})
        if attributes:
            request["content"].append(data_structure('', attributes))
        requests_.append(request)

    return {
        "name": "",
        "description": "",
        "method": method,
        "parameters": list(parameters),
        "attributes": {"relation": relation, "uriTemplate": uri_template},
        "content": [],
        "examples": [{"name": "", "description": "", "requests": requests_, "responses": []}]
    }


def resource(name, uri_template, actions=(), content=(), parameters=()):
    return {
        "element": "resource",
        "name": name,
        "description": "",
        "uriTemplate": uri_template,
        "model": {},
        "parameters": list(parameters),
        "actions": list(actions),
        "content": list(content)
    }


def blueprint_ast(groups, metadata=()):
    return {
        "_version": "4.0",
        "name": "Polls",
        "description": "",
        "metadata": [{"name": name, "value": value} for name, value in metadata],
        "resourceGroups": [
            {"name": name, "description": "", "resources": list(resources)} for name, resources in groups
        ],
        "content": []
    }


def polls_ast(metadata=(('FORMAT', '1A'), ('HOST', BASE_URL))):
    return blueprint_ast([
        ('Question', [
            resource('Question', '/questions/{question_id}', [
                action('GET', 'self'),
                action('DELETE', 'delete'),
            ], content=[
                data_structure('Question', [
                    member('question', value='Favourite programming language?', required=True),
                    member('url'),
                    member('published_at'),
                    member('choices', 'array', ['Choice'])
                ])
            ], parameters=[parameter('question_id', example='1', type='number')]),
            resource('Choice', '/questions/{question_id}/choices/{choice_id}', [
                action('POST', 'vote'),
            ], content=[
                data_structure('Choice', [
                    member('choice'),
                    member('votes', 'number'),
                    member('url')
                ])
            ]),
            resource('Questions Collection', '/questions{?page}', [
                action('GET', 'questions', parameters=[parameter('page', default='1', required=False)]),
                action('POST', 'create', uri_template='/questions', content_type='application/json',
                       attributes=[member('question', required=True), member('choices', 'array', ['string'])]),
            ], content=[
                data_structure('Questions Collection', type_name='array', nested_types=['Question'])
            ]),
        ]),
        ('Misc', [
            resource('Health', '/health', [action('GET')]),
            resource('Search', '/search', [action('GET', 'search', uri_template='/search{?q}')]),
        ]),
    ], metadata=metadata)


def question(question_id=1, votes=(2048, 1024)):
    url = '/questions/{}'.format(question_id)
    return {
        "question": "Favourite programming language?",
        "url": url,
        "published_at": "2015-08-05T08:40:51.620Z",
        "choices": [
            {"choice": "Swift", "url": url + "/choices/1", "votes": votes[0]},
            {"choice": "Python", "url": url + "/choices/2", "votes": votes[1]}
        ]
    }


class BaseTestCase(TestCase):

    def assertJSONEqual(self, first, second, msg=None):
        self.assertEqual(json.loads(json.dumps(first)), json.loads(json.dumps(second)), msg)

    def create_app(self):
        app = Flask(__name__)
        app.debug = True
        return app

    def mount(self, session, app, prefix=BASE_URL):
        adapter = FlaskAdapter(app)
        session.mount(prefix, adapter)
        return adapter
