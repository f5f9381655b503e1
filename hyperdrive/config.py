import os

DEFAULTS = {
    'HYPERDRIVE_PARSER_URL': 'https://api.apiblueprint.org/parser',
    'HYPERDRIVE_APIARY_URL': 'https://jsapi.apiary.io/apis/{}.apib',
    'HYPERDRIVE_BLUEPRINT_CONTENT_TYPE': 'text/vnd.apiblueprint+markdown; version=1A',
    'HYPERDRIVE_PARSE_RESULT_CONTENT_TYPE': 'application/vnd.apiblueprint.parseresult+json; version=2.1',
    'HYPERDRIVE_TIMEOUT': 30.0,
}


class Config(dict):
    """
    A dictionary of ``HYPERDRIVE_*`` settings, seeded with :data:`DEFAULTS`.

    :param dict defaults: optional overrides applied on top of :data:`DEFAULTS`
    """

    def __init__(self, defaults=None, **kwargs):
        super(Config, self).__init__(DEFAULTS)
        self.update(defaults or {})
        self.update(kwargs)

    def from_envvars(self, environ=None, prefix='HYPERDRIVE_'):
        """
        Overrides known settings from environment variables, converting each value to the type of its default.

        :param dict environ: defaults to ``os.environ``
        :return: the config itself
        """
        environ = os.environ if environ is None else environ

        for key, value in environ.items():
            if not key.startswith(prefix) or key not in DEFAULTS:
                continue

            default = DEFAULTS[key]
            if default is not None and not isinstance(default, str):
                value = type(default)(value)
            self[key] = value
        return self
