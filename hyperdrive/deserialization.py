"""
Generic deserialization of hypermedia JSON formats into :class:`Representor` objects.

Used for responses that do not belong to a described resource.
"""
from collections import OrderedDict

from .representor import Representor, Transition
from .uri import absolute_uri

HAL = 'application/hal+json'
SIREN = 'application/vnd.siren+json'


def _as_list(value):
    if isinstance(value, list):
        return value
    return [value]


def _link_transition(link, method='GET'):
    def build(builder):
        builder.method = method
        if isinstance(link.get('type'), str):
            builder.suggested_content_types = [link['type']]

    return Transition.build(link['href'], build)


def deserialize_hal(document):
    def build(builder):
        for key, value in document.items():
            if key == '_links' and isinstance(value, dict):
                for relation, links in value.items():
                    for link in _as_list(links):
                        if isinstance(link, dict) and isinstance(link.get('href'), str):
                            builder.add_transition(relation, _link_transition(link))
            elif key == '_embedded' and isinstance(value, dict):
                for relation, embedded in value.items():
                    for item in _as_list(embedded):
                        if isinstance(item, dict):
                            builder.add_representor(relation, deserialize_hal(item))
            else:
                builder.add_attribute(key, value)

    return Representor.build(build)


def _siren_action(action):
    def build(builder):
        builder.method = (action.get('method') or 'GET').upper()
        if isinstance(action.get('type'), str):
            builder.suggested_content_types = [action['type']]

        for field in action.get('fields') or ():
            if isinstance(field, dict) and 'name' in field:
                builder.add_attribute(field['name'], value=field.get('value'))

    return Transition.build(action['href'], build)


def deserialize_siren(document):
    def build(builder):
        properties = document.get('properties')
        if isinstance(properties, dict):
            for key, value in properties.items():
                builder.add_attribute(key, value)

        if isinstance(document.get('title'), str):
            builder.add_metadata('title', document['title'])

        for link in document.get('links') or ():
            if isinstance(link, dict) and isinstance(link.get('href'), str):
                for relation in _as_list(link.get('rel') or ()):
                    builder.add_transition(relation, _link_transition(link))

        for entity in document.get('entities') or ():
            if not isinstance(entity, dict):
                continue
            for relation in _as_list(entity.get('rel') or ()):
                if isinstance(entity.get('href'), str):
                    builder.add_transition(relation, _link_transition(entity))
                else:
                    builder.add_representor(relation, deserialize_siren(entity))

        for action in document.get('actions') or ():
            if isinstance(action, dict) and isinstance(action.get('href'), str) and action.get('name'):
                builder.add_transition(action['name'], _siren_action(action))

    return Representor.build(build)


deserializers = OrderedDict([
    (HAL, deserialize_hal),
    (SIREN, deserialize_siren),
])

preferred_content_types = list(deserializers)


def deserialize(content_type, document):
    """
    Returns a :class:`Representor` for a decoded document of a supported content type, otherwise ``None``.
    """
    deserializer = deserializers.get(content_type)
    if deserializer is None or not isinstance(document, dict):
        return None
    return deserializer(document)


def absolute_representor(base_url, representor):
    """
    Returns a copy of ``representor`` where the URIs of all transitions, including those of embedded
    representors, are resolved against ``base_url``.
    """
    def absolute_transition(transition):
        return Transition(absolute_uri(base_url, transition.uri),
                          method=transition.method,
                          suggested_content_types=transition.suggested_content_types,
                          attributes=transition.attributes,
                          parameters=transition.parameters)

    return Representor(
        transitions=OrderedDict((relation, [absolute_transition(t) for t in transitions])
                                for relation, transitions in representor.transitions.items()),
        representors=OrderedDict((relation, [absolute_representor(base_url, r) for r in representors])
                                 for relation, representors in representor.representors.items()),
        attributes=representor.attributes,
        metadata=representor.metadata)
