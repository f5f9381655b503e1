import json
import logging
from concurrent.futures import ThreadPoolExecutor, wait

import requests
from werkzeug.http import parse_options_header

from . import signals
from .config import Config
from .deserialization import absolute_representor, deserialize, preferred_content_types as default_content_types
from .exceptions import DecodeError, HyperdriveError, TransportError
from .representor import Representor, Transition
from .uri import expand, is_absolute_url

logger = logging.getLogger(__name__)

JSON = 'application/json'

BODY_METHODS = ('POST', 'PUT', 'PATCH')


def get_mimetype(response):
    mimetype, _ = parse_options_header(response.headers.get('Content-Type', ''))
    return mimetype.lower()


def is_json(mimetype):
    return mimetype == JSON or mimetype.endswith('+json')


def decode_json(response):
    """
    Decodes the body of a response, returning ``None`` for an empty body.

    :raises DecodeError: if the body is not valid JSON
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise DecodeError('Response body is not valid JSON: {}'.format(e), body=response.content)


def _encode_json(attributes):
    return json.dumps(attributes).encode('utf-8')


class Hyperdrive(object):
    """
    A hypermedia API client.

    All asynchronous completions are delivered on one single-worker executor, so callbacks never run concurrently
    with each other.

    :param list preferred_content_types: supported content types in order of preference; defaults to all content
        types the generic deserialization understands
    :param requests.Session session: an optional session, e.g. with custom session-level headers
    :param config: an optional :class:`Config` or dictionary of ``HYPERDRIVE_*`` settings
    :param executor: an optional executor with a single worker used for asynchronous requests
    """

    encoders = {
        JSON: _encode_json
    }

    def __init__(self, preferred_content_types=None, session=None, config=None, executor=None):
        self.preferred_content_types = list(preferred_content_types or default_content_types)
        self.session = session or requests.Session()
        self.config = config if isinstance(config, Config) else Config(config)
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='hyperdrive')

    def set_session(self, session):
        self.session = session

    def close(self):
        self.executor.shutdown(wait=True)
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    def enter(self, uri):
        """
        Enters a hypermedia API given its root URI.
        """
        return self.request(uri)

    def enter_async(self, uri, callback=None):
        return self.submit(self.enter, uri, callback=callback)

    # Subclass hooks

    def construct_request(self, uri, parameters=None):
        """
        Constructs a ``GET`` request from a URI template and parameters.

        :raises HyperdriveError: if the expanded URI is not an absolute URL
        """
        expanded_uri = expand(uri, parameters)
        if not is_absolute_url(expanded_uri):
            raise HyperdriveError('Creating URL from given URI failed: {!r}'.format(expanded_uri))

        return requests.Request('GET', expanded_uri, headers={
            'Accept': ', '.join(self.preferred_content_types)
        })

    def construct_transition_request(self, transition, parameters=None, attributes=None, method=None):
        request = self.construct_request(transition.uri, parameters)
        request.method = (method or transition.method).upper()

        if request.method in BODY_METHODS:
            request.headers['Content-Type'] = JSON

        if attributes is not None:
            request.data = self.encode_attributes(attributes, transition.suggested_content_types)

        return request

    def encode_attributes(self, attributes, suggested_content_types=()):
        for content_type in suggested_content_types:
            encoder = self.encoders.get(content_type)
            if encoder is not None:
                return encoder(attributes)
        return self.encoders[JSON](attributes)

    def decode_response(self, response):
        """
        Returns the decoded body of a JSON response, or ``None`` for any other response.

        :raises DecodeError:
        """
        if not is_json(get_mimetype(response)):
            return None
        return decode_json(response)

    def construct_response(self, request, response, body=None):
        """
        Returns a :class:`Representor` for a response, or ``None`` if the response is not understood.

        :param request: the request that was sent
        :param requests.Response response:
        :param body: the decoded JSON body
        """
        representor = deserialize(get_mimetype(response), body)
        if representor is not None:
            return absolute_representor(response.url, representor)
        return None

    # Perform requests

    def send(self, request):
        prepared = self.session.prepare_request(request)
        signals.request_started.send(self, request=prepared)
        logger.debug('%s %s', prepared.method, prepared.url)

        try:
            response = self.session.send(prepared, timeout=self.config['HYPERDRIVE_TIMEOUT'])
        except requests.RequestException as e:
            raise TransportError(e)

        logger.debug('%s %s -> %s', prepared.method, prepared.url, response.status_code)
        signals.response_received.send(self, request=prepared, response=response)
        return response

    def perform(self, request):
        response = self.send(request)

        try:
            body = self.decode_response(response)
        except DecodeError as e:
            logger.warning('%s %s: %s', response.request.method, response.url, e.message)
            representor = None
        else:
            representor = self.construct_response(response.request, response, body)

        if representor is None:
            representor = Representor()

        signals.representor_constructed.send(self, representor=representor, response=response)
        return representor

    def request(self, target, parameters=None, attributes=None, method=None):
        """
        Performs a request and returns the :class:`Representor` of the response.

        :param target: a URI (template) or a :class:`Transition`
        :param dict parameters: bindings for the URI template
        :param dict attributes: attributes sent as the request body of a transition
        :param str method: overrides the method of a transition
        :raises TransportError: if the request could not be sent
        """
        if isinstance(target, Transition):
            request = self.construct_transition_request(target, parameters, attributes, method)
        else:
            request = self.construct_request(target, parameters)
        return self.perform(request)

    def request_async(self, target, parameters=None, attributes=None, method=None, callback=None):
        return self.submit(self.request, target, parameters, attributes, method, callback=callback)

    def submit(self, fn, *args, **kwargs):
        """
        Runs ``fn`` on the executor and returns a :class:`concurrent.futures.Future`.

        :param callback: optional callable receiving the completed future, run on the executor
        """
        callback = kwargs.pop('callback', None)
        future = self.executor.submit(fn, *args, **kwargs)

        if callback is not None:
            self.executor.submit(_deliver, callback, future)
        return future


def _deliver(callback, future):
    wait([future])
    try:
        callback(future)
    except Exception:
        logger.exception('Completion callback %r failed', callback)
