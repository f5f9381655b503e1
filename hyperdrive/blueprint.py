import logging
from collections import OrderedDict
from contextlib import contextmanager

import requests
from requests.utils import parse_header_links
from werkzeug.http import parse_list_header

from .client import JSON, Hyperdrive, decode_json, get_mimetype, is_json
from .config import Config
from .description import Blueprint, walk
from .exceptions import ConfigurationError, DecodeError, DescriptionInvalidError, TransportError
from .representor import Representor
from .transitions import transition_from, uri_template_for_action
from .uri import absolute_uri, absolute_uri_template, expand, extract, is_absolute_url

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_RELATION = 'objects'


def merge(lhs, rhs):
    """
    Merges two dictionaries. Keys in ``lhs`` take precedence over the same keys in ``rhs``.
    """
    merged = OrderedDict(rhs or {})
    merged.update(lhs or {})
    return merged


def allowed_methods(response):
    """
    Returns the methods listed in the ``Allow`` header of a response, or ``None`` if there is no such header.
    """
    allow = response.headers.get('Allow')
    if allow is None:
        return None
    return [method.strip().upper() for method in parse_list_header(allow)]


def response_links(response):
    link = response.headers.get('Link')
    if not link:
        return []
    return parse_header_links(link)


def _fetch(session, config, method, url, **kwargs):
    try:
        response = session.request(method, url, timeout=config['HYPERDRIVE_TIMEOUT'], **kwargs)
    except requests.RequestException as e:
        raise TransportError(e)

    if not response.ok:
        raise DescriptionInvalidError('{} {} returned status {}.'.format(method, url, response.status_code))
    if not response.content:
        raise DescriptionInvalidError('Response has no body.')
    return response


@contextmanager
def _closing_on_error(session=None):
    """
    Yields ``session``, or a new session that is closed if the block raises.
    """
    if session is not None:
        yield session
        return

    session = requests.Session()
    try:
        yield session
    except Exception:
        session.close()
        raise


class HyperBlueprint(Hyperdrive):
    """
    A :class:`Hyperdrive` for APIs described by an API Blueprint.

    Responses for resources described in the blueprint are turned into representors with the attributes of the
    response body, embedded representors for attributes declared as arrays of other resources and the transitions
    of all the resource's actions. Other responses fall back to generic deserialization.

    :param Blueprint blueprint: the parsed blueprint
    :param str base_url: URL all URI templates of the blueprint are relative to
    """

    def __init__(self, blueprint, base_url, **kwargs):
        super(HyperBlueprint, self).__init__(**kwargs)
        self.blueprint = blueprint
        self.base_url = base_url

    # Entering an API

    @classmethod
    def enter_apiary(cls, apiary, base_url=None, **kwargs):
        """
        Enters an API from a blueprint hosted on Apiary.

        :param str apiary: the API name on Apiary
        """
        config = Config(kwargs.pop('config', None))
        return cls.enter_url(config['HYPERDRIVE_APIARY_URL'].format(apiary), base_url, config=config, **kwargs)

    @classmethod
    def enter_url(cls, blueprint_url, base_url=None, **kwargs):
        """
        Enters an API from the URL of its blueprint.
        """
        if not is_absolute_url(blueprint_url):
            raise ConfigurationError('Invalid URI for blueprint {}'.format(blueprint_url))

        config = Config(kwargs.pop('config', None))
        session = kwargs.pop('session', None)

        with _closing_on_error(session) as session:
            response = _fetch(session, config, 'GET', blueprint_url, headers={
                'Accept': config['HYPERDRIVE_BLUEPRINT_CONTENT_TYPE']
            })
            return cls.enter_source(response.content, base_url, session=session, config=config, **kwargs)

    @classmethod
    def enter_source(cls, source, base_url=None, **kwargs):
        """
        Enters an API from the source of its blueprint, which is parsed by the API Blueprint parser service.

        :param source: the blueprint as ``str`` or ``bytes``
        :raises DescriptionInvalidError: if the parser does not return a usable AST
        """
        config = Config(kwargs.pop('config', None))
        session = kwargs.pop('session', None)

        if isinstance(source, str):
            source = source.encode('utf-8')

        with _closing_on_error(session) as session:
            response = _fetch(session, config, 'POST', config['HYPERDRIVE_PARSER_URL'], data=source, headers={
                'Content-Type': config['HYPERDRIVE_BLUEPRINT_CONTENT_TYPE'],
                'Accept': config['HYPERDRIVE_PARSE_RESULT_CONTENT_TYPE']
            })

            try:
                document = decode_json(response)
            except DecodeError as e:
                raise DescriptionInvalidError(e.message)

            if walk(document, 'error', 'code'):
                raise DescriptionInvalidError(walk(document, 'error', 'message', expect=str))

            return cls.enter_blueprint(Blueprint.from_parse_result(document), base_url,
                                       session=session, config=config, **kwargs)

    @classmethod
    def enter_ast(cls, ast, base_url=None, **kwargs):
        """
        :raises DescriptionInvalidError: if ``ast`` is not an API Blueprint AST
        """
        return cls.enter_blueprint(Blueprint.from_ast(ast), base_url, **kwargs)

    @classmethod
    def enter_blueprint(cls, blueprint, base_url=None, **kwargs):
        """
        Enters an API with a parsed blueprint.

        When no ``base_url`` is given, the ``HOST`` metadata of the blueprint is used.

        :return: a tuple ``(hyperdrive, representor)`` of the client and the root representor
        :raises ConfigurationError: if no base URL can be determined
        """
        if base_url is None:
            host = blueprint.host
            if host is None or not is_absolute_url(host):
                raise ConfigurationError()
            base_url = host

        logger.debug('Entering %r at %s', blueprint, base_url)
        hyperdrive = cls(blueprint, base_url, **kwargs)
        return hyperdrive, hyperdrive.root_representor()

    @property
    def resources(self):
        return self.blueprint.resources

    def root_representor(self):
        """
        Returns a representor with a transition for every ``GET`` action with a relation.
        """
        def build(builder):
            for resource in self.resources:
                for action in resource.actions:
                    if not action.has_relation or action.method != 'GET':
                        continue

                    uri = absolute_uri_template(self.base_url, uri_template_for_action(resource, action))
                    builder.add_transition(action.relation, transition_from(resource, action, uri))

        return Representor.build(build)

    def construct_request(self, uri, parameters=None):
        request = super(HyperBlueprint, self).construct_request(uri, parameters)
        request.headers['Accept'] = JSON
        return request

    def construct_response(self, request, response, body=None):
        resource = self.resource_for_response(response)
        if resource is None:
            logger.debug('No resource matches %s', response.url)
            return super(HyperBlueprint, self).construct_response(request, response, body)
        return self.representor_for_response(resource, request, response, body)

    def resource_for_response(self, response):
        """
        Returns the first resource whose URI template matches the URL of the response.
        """
        if not response.url:
            return None

        for resource in self.resources:
            template = absolute_uri_template(self.base_url, resource.uri_template)
            if extract(template, response.url) is not None:
                return resource
        return None

    def representor_for_response(self, resource, request, response, body=None):
        action = resource.action_for_method((request.method or 'GET').upper())
        template = absolute_uri_template(self.base_url, uri_template_for_action(resource, action))
        parameters = extract(template, response.url) or OrderedDict()

        def build(builder):
            derived_parameters = None

            if body is not None and is_json(get_mimetype(response)):
                if isinstance(body, dict):
                    self.add_attributes(resource, request, response, body, builder)
                    derived_parameters = self.parameters(resource, body)
                elif isinstance(body, list):
                    self.add_collection(resource, request, response, body, builder)

            self.add_transitions(resource, merge(parameters, derived_parameters), builder,
                                 allowed_methods=allowed_methods(response))

            for link in response_links(response):
                for relation in (link.get('rel') or '').split():
                    self.add_link(relation, link, response, builder)

            if 'self' not in builder.transitions:
                builder.add_transition('self', response.url)

        return Representor.build(build)

    # Subclass hooks

    def parameters(self, resource, attributes):
        """
        Returns URI parameters for an object of ``resource`` derived from its attributes.

        By default, a ``url`` attribute is matched against the URI templates of the blueprint, starting with
        ``resource`` itself.
        """
        url = attributes.get('url')
        if not isinstance(url, str):
            return None

        absolute = is_absolute_url(url)
        for candidate in (resource,) + tuple(r for r in self.resources if r is not resource):
            template = candidate.uri_template
            if absolute:
                template = absolute_uri_template(self.base_url, template)

            parameters = extract(template, url)
            if parameters is not None:
                return parameters
        return None

    # Building representors

    def add_attributes(self, resource, request, response, attributes, builder):
        for key, value in attributes.items():
            embedded_resource = self.blueprint.resource_for_attribute(resource, key)

            if embedded_resource is not None and isinstance(value, (dict, list)):
                self.add_embedded(key, embedded_resource, request, response, value, builder)
            else:
                builder.add_attribute(key, value)

    def add_embedded(self, relation, resource, request, response, value, builder):
        if isinstance(value, dict):
            builder.add_representor(relation, lambda embedded: self.add_object(
                resource, request, response, value, embedded))
        elif isinstance(value, list):
            for item in value:
                self.add_embedded(relation, resource, request, response, item, builder)

    def add_object(self, resource, request, response, attributes, builder):
        self.add_attributes(resource, request, response, attributes, builder)
        self.add_transitions(resource, self.parameters(resource, attributes), builder)

    def add_collection(self, resource, request, response, objects, builder):
        item_type = resource.collection_type
        item_resource = self.blueprint.resource_named(item_type) if item_type else None
        if item_resource is None:
            logger.debug('%r does not describe a collection of resources', resource)
            return

        action = resource.action_for_method((request.method or 'GET').upper())
        relation = action.relation if action is not None and action.has_relation else DEFAULT_COLLECTION_RELATION

        for item in objects:
            if isinstance(item, dict):
                self.add_embedded(relation, item_resource, request, response, item, builder)

    def add_transitions(self, resource, parameters, builder, allowed_methods=None):
        """
        Adds the transitions for all actions with a relation of ``resource``.

        :param dict parameters: bindings for the URI templates
        :param list allowed_methods: when given, actions with other methods are left out
        """
        resource_uri = absolute_uri_template(self.base_url, expand(resource.uri_template, parameters))

        for action in resource.actions:
            if not action.has_relation:
                continue
            if allowed_methods is not None and action.method not in allowed_methods:
                continue

            uri = resource_uri
            if action.has_uri_template:
                uri = absolute_uri_template(self.base_url, expand(action.uri_template, parameters))

            builder.add_transition(action.relation, transition_from(resource, action, uri))

    def add_link(self, relation, link, response, builder):
        def build(transition):
            transition.method = 'GET'
            if link.get('type'):
                transition.suggested_content_types = [link['type']]

        builder.add_transition(relation, absolute_uri(response.url, link['url']), build)
