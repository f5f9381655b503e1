"""
A read-only model of a parsed API Blueprint (the ``ast`` of a parse result).

Only the parts of the AST that are needed to navigate an API are modelled as objects. Data structures are kept as
the raw, loosely-typed trees returned by the parser and inspected with :func:`walk`, which never raises.
"""
from collections import OrderedDict

from jsonschema import Draft4Validator, FormatChecker
from werkzeug.utils import cached_property

from .exceptions import DescriptionInvalidError

PARAMETERS_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "values": {"type": "array"}
        },
        "required": ["name"]
    }
}

AST_SCHEMA = {
    "type": "object",
    "properties": {
        "metadata": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "value": {"type": "string"}
                }
            }
        },
        "resourceGroups": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "resources": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "uriTemplate": {"type": "string"},
                                "parameters": PARAMETERS_SCHEMA,
                                "content": {"type": "array"},
                                "actions": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "method": {"type": "string"},
                                            "parameters": PARAMETERS_SCHEMA,
                                            "examples": {"type": "array"},
                                            "content": {"type": "array"}
                                        },
                                        "required": ["method"]
                                    }
                                }
                            },
                            "required": ["uriTemplate"]
                        }
                    }
                }
            }
        }
    }
}

PARSE_RESULT_SCHEMA = {
    "type": "object",
    "properties": {
        "ast": AST_SCHEMA
    },
    "required": ["ast"]
}


def _validate(schema, instance):
    validator = Draft4Validator(schema, format_checker=FormatChecker())
    errors = list(validator.iter_errors(instance))
    if errors:
        raise DescriptionInvalidError(errors=errors)


def walk(tree, *steps, **kwargs):
    """
    Follows ``steps`` through a JSON-like tree of dicts and lists.

    A step is a key (looked up in a dict), an integer (an index into a list) or a callable predicate (selects the
    first item of a list for which it returns ``True``). The walk stops and returns ``None`` as soon as the tree
    does not have the expected shape.

    :param type expect: optional type (or tuple of types) the result must be an instance of
    """
    expect = kwargs.pop('expect', None)

    for step in steps:
        if callable(step):
            if not isinstance(tree, list):
                return None
            tree = next((item for item in tree if step(item)), None)
        elif isinstance(step, int):
            if not isinstance(tree, list) or not -len(tree) <= step < len(tree):
                return None
            tree = tree[step]
        else:
            if not isinstance(tree, dict):
                return None
            tree = tree.get(step)

        if tree is None:
            return None

    if expect is not None and not isinstance(tree, expect):
        return None
    return tree


def element(name):
    return lambda item: walk(item, 'element') == name


def member_list(data_structure):
    """
    Returns the members of the first section of a data structure if that section is a member list.
    """
    section = walk(data_structure, 'sections', 0, expect=dict)
    if walk(section, 'class') != 'memberType':
        return []
    return walk(section, 'content', expect=list) or []


def member_name(member):
    return walk(member, 'content', 'name', 'literal', expect=str)


def array_item_type(type_specification):
    """
    Returns the name of the nested type if ``type_specification`` describes an ``array`` of a named type.
    """
    if walk(type_specification, 'name') != 'array':
        return None
    return walk(type_specification, 'nestedTypes', 0, 'literal', expect=str)


def _empty_to_none(value):
    if value == '':
        return None
    return value


class Parameter(object):
    def __init__(self, name, description='', type=None, required=True, default=None, example=None, values=()):
        self.name = name
        self.description = description
        self.type = type
        self.required = required
        self.default = default
        self.example = example
        self.values = tuple(values)

    @classmethod
    def from_ast(cls, ast):
        return cls(ast.get('name'),
                   description=ast.get('description', ''),
                   type=_empty_to_none(ast.get('type')),
                   required=ast.get('required', True),
                   default=_empty_to_none(ast.get('default')),
                   example=_empty_to_none(ast.get('example')),
                   values=[value.get('value') for value in ast.get('values') or () if isinstance(value, dict)])

    def __repr__(self):
        return '<Parameter {!r}>'.format(self.name)


class Action(object):
    """
    A HTTP method available on a :class:`Resource`.

    :param str method: upper-case HTTP method
    :param str relation: relation of the transition; an action without relation is not navigable
    :param str uri_template: overrides the resource URI template unless empty
    """

    def __init__(self, method, name='', description='', relation=None, uri_template=None, parameters=(),
                 examples=(), content=()):
        self.method = method.upper()
        self.name = name
        self.description = description
        self.relation = relation
        self.uri_template = uri_template
        self.parameters = tuple(parameters)
        self.examples = list(examples)
        self.content = list(content)

    @classmethod
    def from_ast(cls, ast):
        return cls(ast['method'],
                   name=ast.get('name', ''),
                   description=ast.get('description', ''),
                   relation=walk(ast, 'attributes', 'relation', expect=str),
                   uri_template=walk(ast, 'attributes', 'uriTemplate', expect=str),
                   parameters=[Parameter.from_ast(p) for p in ast.get('parameters') or ()],
                   examples=ast.get('examples') or (),
                   content=ast.get('content') or ())

    @property
    def has_relation(self):
        return bool(self.relation)

    @property
    def has_uri_template(self):
        return bool(self.uri_template)

    @cached_property
    def content_types(self):
        content_types = []
        for example in self.examples:
            for request in walk(example, 'requests', expect=list) or ():
                for header in walk(request, 'headers', expect=list) or ():
                    if walk(header, 'name', expect=str) == 'Content-Type':
                        value = walk(header, 'value', expect=str)
                        if value and value not in content_types:
                            content_types.append(value)
        return content_types

    @cached_property
    def data_structure(self):
        return walk(self.content, element('dataStructure')) or \
            walk(self.examples, 0, 'requests', 0, 'content', element('dataStructure'))

    @cached_property
    def attributes(self):
        """
        Request attributes declared for this action, as an ordered mapping of name to ``(value, required)``.
        """
        attributes = OrderedDict()
        for member in member_list(self.data_structure):
            name = member_name(member)
            if name is None:
                continue
            value = walk(member, 'content', 'valueDefinition', 'values', 0, 'literal')
            type_attributes = walk(member, 'content', 'valueDefinition', 'typeDefinition', 'attributes',
                                   expect=list) or ()
            attributes[name] = (value, 'required' in type_attributes)
        return attributes

    def __repr__(self):
        return '<Action {} {!r}>'.format(self.method, self.relation)


class Resource(object):
    def __init__(self, name, uri_template, actions=(), description='', parameters=(), content=()):
        self.name = name
        self.uri_template = uri_template
        self.actions = tuple(actions)
        self.description = description
        self.parameters = tuple(parameters)
        self.content = list(content)

    @classmethod
    def from_ast(cls, ast):
        return cls(ast.get('name', ''),
                   ast['uriTemplate'],
                   actions=[Action.from_ast(a) for a in ast.get('actions') or ()],
                   description=ast.get('description', ''),
                   parameters=[Parameter.from_ast(p) for p in ast.get('parameters') or ()],
                   content=ast.get('content') or ())

    @cached_property
    def data_structure(self):
        return walk(self.content, element('dataStructure'), expect=dict)

    @property
    def type_definition(self):
        return walk(self.data_structure, 'typeDefinition', expect=dict)

    @property
    def type_specification(self):
        return walk(self.data_structure, 'typeDefinition', 'typeSpecification', expect=dict)

    @property
    def collection_type(self):
        """
        The name of the item type when this resource is an ``array`` of another resource.
        """
        return array_item_type(self.type_specification)

    def member_type(self, key):
        """
        Returns the name of the item type of the member ``key`` if it is declared as an ``array`` of a named type.
        """
        member = next((m for m in member_list(self.data_structure) if member_name(m) == key), None)
        return array_item_type(walk(member, 'content', 'valueDefinition', 'typeDefinition', 'typeSpecification'))

    def action_for_method(self, method):
        return next((action for action in self.actions if action.method == method), None)

    def __repr__(self):
        return '<Resource {!r} {!r}>'.format(self.name, self.uri_template)


class ResourceGroup(object):
    def __init__(self, name='', resources=(), description=''):
        self.name = name
        self.resources = tuple(resources)
        self.description = description

    @classmethod
    def from_ast(cls, ast):
        return cls(ast.get('name', ''),
                   resources=[Resource.from_ast(r) for r in ast.get('resources') or ()],
                   description=ast.get('description', ''))


class Blueprint(object):
    """
    A parsed API Blueprint.

    :param list metadata: ``(name, value)`` pairs in declaration order
    :param list resource_groups: :class:`ResourceGroup` objects
    """

    def __init__(self, name='', description='', metadata=(), resource_groups=()):
        self.name = name
        self.description = description
        self.metadata = tuple(metadata)
        self.resource_groups = tuple(resource_groups)

    @classmethod
    def from_ast(cls, ast):
        """
        :raises DescriptionInvalidError: if the AST does not have the shape of an API Blueprint AST
        """
        _validate(AST_SCHEMA, ast)
        return cls._from_ast(ast)

    @classmethod
    def _from_ast(cls, ast):
        return cls(ast.get('name', ''),
                   description=ast.get('description', ''),
                   metadata=[(m.get('name'), m.get('value')) for m in ast.get('metadata') or ()],
                   resource_groups=[ResourceGroup.from_ast(g) for g in ast.get('resourceGroups') or ()])

    @classmethod
    def from_parse_result(cls, document):
        """
        Validates a decoded parse result and returns the blueprint of its ``ast``.

        :raises DescriptionInvalidError: if the parse result is not usable
        """
        _validate(PARSE_RESULT_SCHEMA, document)
        return cls._from_ast(document['ast'])

    @cached_property
    def resources(self):
        return [resource for group in self.resource_groups for resource in group.resources]

    @property
    def host(self):
        return next((value for name, value in self.metadata if name == 'HOST'), None)

    def resource_named(self, name):
        return next((resource for resource in self.resources if resource.name == name), None)

    def resource_for_attribute(self, resource, key):
        """
        Returns the resource embedded under the attribute ``key`` of ``resource``, or ``None`` if the attribute is
        a plain value.
        """
        name = resource.member_type(key)
        if name is None:
            return None
        return self.resource_named(name)

    def __repr__(self):
        return '<Blueprint {!r}>'.format(self.name)
