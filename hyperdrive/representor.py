from collections import OrderedDict
from types import MappingProxyType


def _frozen(mapping, freeze_value=None):
    items = (mapping or {}).items()
    if freeze_value is not None:
        items = ((key, freeze_value(value)) for key, value in items)
    return MappingProxyType(OrderedDict(items))


class InputProperty(object):
    """
    An attribute or parameter accepted by a :class:`Transition`.
    """

    def __init__(self, value=None, default_value=None, required=False):
        self.value = value
        self.default_value = default_value
        self.required = required

    def __eq__(self, other):
        return isinstance(other, InputProperty) and \
            (self.value, self.default_value, self.required) == (other.value, other.default_value, other.required)

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return '{}(value={!r}, default_value={!r}, required={!r})'.format(
            self.__class__.__name__, self.value, self.default_value, self.required)


class Transition(object):
    """
    A navigable HTTP transition.

    .. attribute:: uri

        Absolute URI or URI template of the target

    .. attribute:: method

        HTTP method, ``GET`` by default

    .. attribute:: suggested_content_types

        Content types the target accepts, in order of preference

    .. attribute:: attributes

        Read-only mapping of attribute names to :class:`InputProperty` objects, sent in the request body

    .. attribute:: parameters

        Read-only mapping of parameter names to :class:`InputProperty` objects, used to expand :attr:`uri`
    """

    def __init__(self, uri, method='GET', suggested_content_types=(), attributes=None, parameters=None):
        self.uri = uri
        self.method = method
        self.suggested_content_types = tuple(suggested_content_types)
        self.attributes = _frozen(attributes)
        self.parameters = _frozen(parameters)

    @classmethod
    def build(cls, uri, callback=None):
        builder = TransitionBuilder(uri)
        if callback is not None:
            callback(builder)
        return builder.build()

    def __eq__(self, other):
        return isinstance(other, Transition) and \
            (self.uri, self.method, self.suggested_content_types) == \
            (other.uri, other.method, other.suggested_content_types) and \
            dict(self.attributes) == dict(other.attributes) and \
            dict(self.parameters) == dict(other.parameters)

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return '<Transition {} {}>'.format(self.method, self.uri)


class TransitionBuilder(object):
    def __init__(self, uri):
        self.uri = uri
        self.method = 'GET'
        self.suggested_content_types = []
        self.attributes = OrderedDict()
        self.parameters = OrderedDict()

    def add_attribute(self, name, value=None, default_value=None, required=False):
        self.attributes[name] = InputProperty(value, default_value, required)

    def add_parameter(self, name, value=None, default_value=None, required=False):
        self.parameters[name] = InputProperty(value, default_value, required)

    def build(self):
        return Transition(self.uri,
                          method=self.method,
                          suggested_content_types=self.suggested_content_types,
                          attributes=self.attributes,
                          parameters=self.parameters)


class Representor(object):
    """
    A hypermedia representation: attributes, embedded representors and transitions.

    Embedded representors and transitions are grouped by relation in two separate namespaces, so ``self`` may name
    both an embedded representor and a transition. Representors are immutable; use :meth:`build` or a
    :class:`RepresentorBuilder` to create one.

    :param dict transitions: relation to list of :class:`Transition`
    :param dict representors: relation to list of :class:`Representor`
    :param dict attributes: attribute name to JSON value
    :param dict metadata: string keys and values
    """

    def __init__(self, transitions=None, representors=None, attributes=None, metadata=None):
        self.transitions = _frozen(transitions, tuple)
        self.representors = _frozen(representors, tuple)
        self.attributes = _frozen(attributes)
        self.metadata = _frozen(metadata)

    @classmethod
    def build(cls, callback):
        """
        Calls ``callback`` with a new :class:`RepresentorBuilder` and returns the representor it built.
        """
        builder = RepresentorBuilder()
        callback(builder)
        return builder.build()

    def transition(self, relation):
        """
        Returns the first transition for ``relation``, or ``None``.
        """
        transitions = self.transitions.get(relation)
        if transitions:
            return transitions[0]
        return None

    def __bool__(self):
        return bool(self.transitions or self.representors or self.attributes or self.metadata)

    def __eq__(self, other):
        return isinstance(other, Representor) and \
            dict(self.transitions) == dict(other.transitions) and \
            dict(self.representors) == dict(other.representors) and \
            dict(self.attributes) == dict(other.attributes) and \
            dict(self.metadata) == dict(other.metadata)

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return '<Representor attributes={} representors={} transitions={}>'.format(
            list(self.attributes), list(self.representors), list(self.transitions))


class RepresentorBuilder(object):
    """
    Accumulates the parts of a :class:`Representor`. A builder is used for exactly one representor.
    """

    def __init__(self):
        self.transitions = OrderedDict()
        self.representors = OrderedDict()
        self.attributes = OrderedDict()
        self.metadata = OrderedDict()

    def add_attribute(self, name, value):
        self.attributes[name] = value

    def add_representor(self, relation, representor):
        """
        :param str relation:
        :param representor: a :class:`Representor` or a callback building one from a new builder
        """
        if not isinstance(representor, Representor):
            representor = Representor.build(representor)
        self.representors.setdefault(relation, []).append(representor)

    def add_transition(self, relation, transition, callback=None):
        """
        :param str relation:
        :param transition: a :class:`Transition` or a URI, in which case the transition is built with ``callback``
        """
        if not isinstance(transition, Transition):
            transition = Transition.build(transition, callback)
        self.transitions.setdefault(relation, []).append(transition)

    def add_metadata(self, key, value):
        self.metadata[key] = value

    def build(self):
        return Representor(self.transitions, self.representors, self.attributes, self.metadata)
