import re
from collections import OrderedDict
from functools import lru_cache
from itertools import product
from urllib.parse import parse_qsl, unquote, urljoin, urlsplit

import rfc3987
from uritemplate import URITemplate
from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule

_EXPRESSION = re.compile(r'\{([+#./;?&]?)([^}]*)\}')
_ORIGIN = re.compile(r'^([a-zA-Z][a-zA-Z0-9+.\-]*://[^/?#]*)(.*)$')
_VARIABLE_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

_PATH_OPERATORS = {
    '': '<{}>',
    '+': '<path:{}>',
    '/': '/<{}>',
    '.': '.<{}>',
}

_OPTIONAL_OPERATORS = ('/', '.')


def absolute_uri_template(base_url, uri_template):
    """
    Joins a base URL and a relative URI (template) with exactly one ``/`` at the join point.
    """
    base_slash = base_url.endswith('/')
    template_slash = uri_template.startswith('/')

    if base_slash and template_slash:
        return base_url[:-1] + uri_template
    if base_slash or template_slash:
        return base_url + uri_template
    return '{}/{}'.format(base_url, uri_template)


def absolute_uri(base_url, uri):
    """
    Resolves a URI reference against a base URL. Returns ``uri`` unchanged when there is no base URL.
    """
    if not base_url:
        return uri
    return urljoin(base_url, uri)


def is_absolute_url(value):
    return isinstance(value, str) and rfc3987.match(value, rule='absolute_URI') is not None


def _expandable(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return [_expandable(v) for v in value]
    if isinstance(value, dict):
        return OrderedDict((k, _expandable(v)) for k, v in value.items())
    if isinstance(value, str):
        return value
    return str(value)


def expand(uri_template, parameters=None):
    """
    Expands a URI template. Variables without a binding are removed from the result.

    :param str uri_template: RFC 6570 URI template
    :param dict parameters: variable bindings
    """
    variables = {name: _expandable(value)
                 for name, value in (parameters or {}).items()
                 if value is not None}
    return URITemplate(uri_template).expand(variables)


def _variable_names(expression):
    for name in expression.split(','):
        name = name.strip().rstrip('*').split(':')[0]
        if not _VARIABLE_NAME.match(name):
            raise ValueError('Unsupported variable name: {!r}'.format(name))
        yield name


@lru_cache(maxsize=256)
def _compile(uri_template):
    """
    Splits a URI template into its origin, a werkzeug URL map matching its path and the names bound from the
    query string.
    """
    query_names = []

    def strip_query_expression(match):
        operator, expression = match.groups()
        if operator in ('?', '&'):
            query_names.extend((name, name) for name in _variable_names(expression))
            return ''
        return match.group(0)

    template = _EXPRESSION.sub(strip_query_expression, uri_template)

    origin = None
    match = _ORIGIN.match(template)
    if match:
        origin, template = match.groups()
        if '{' in origin:
            raise ValueError('Expressions in the URI authority are not supported')

    path, _, literal_query = template.partition('?')

    for pair in filter(None, literal_query.split('&')):
        key, _, value = pair.partition('=')
        value_match = _EXPRESSION.fullmatch(value)
        if value_match and value_match.group(1) == '':
            query_names.extend((key, name) for name in _variable_names(value_match.group(2)))

    path = _EXPRESSION.sub(lambda m: '' if m.group(1) == '#' else m.group(0), path).split('#')[0]

    variables = []
    pieces = []
    position = 0

    for match in _EXPRESSION.finditer(path):
        pieces.append((path[position:match.start()], False))
        position = match.end()

        operator, expression = match.groups()
        if operator not in _PATH_OPERATORS:
            raise ValueError('Unsupported operator: {!r}'.format(operator))

        names = list(_variable_names(expression))
        if len(names) != 1:
            raise ValueError('Only one variable per path expression is supported')
        variables.extend(names)
        pieces.append((_PATH_OPERATORS[operator].format(names[0]), operator in _OPTIONAL_OPERATORS))

    pieces.append((path[position:], False))

    # an unbound {/var} or {.var} expands to nothing, so each one yields a rule with and without its segment
    rules = []
    for included in product((True, False), repeat=sum(1 for _, optional in pieces if optional)):
        included = iter(included)
        rule = ''.join(text for text, optional in pieces if not optional or next(included))
        if not rule.startswith('/'):
            rule = '/' + rule
        if rule not in rules:
            rules.append(rule)

    url_map = Map([Rule(rule, endpoint='template') for rule in rules], strict_slashes=False, merge_slashes=False)
    return origin, url_map, tuple(variables), tuple(query_names)


def extract(uri_template, uri):
    """
    Extracts the variable bindings of a concrete URI against a URI template.

    :param str uri_template: an (absolute) URI template
    :param str uri: a concrete URI
    :return: an :class:`OrderedDict` of bindings or ``None`` if ``uri`` does not match the template
    """
    try:
        origin, url_map, variables, query_names = _compile(uri_template)
    except ValueError:
        return None

    parts = urlsplit(uri)

    if origin is not None:
        if '{}://{}'.format(parts.scheme, parts.netloc).lower() != origin.lower():
            return None

    try:
        _, arguments = url_map.bind('localhost').match(parts.path or '/', method=None)
    except HTTPException:
        return None

    parameters = OrderedDict((name, unquote(arguments[name])) for name in variables if name in arguments)

    if query_names:
        query = OrderedDict()
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, []).append(value)

        for key, name in query_names:
            if key in query:
                values = query[key]
                parameters[name] = values[0] if len(values) == 1 else values

    return parameters
