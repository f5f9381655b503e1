class HyperdriveError(Exception):
    message = 'Hyperdrive request failed.'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super(HyperdriveError, self).__init__(self.message)

    def as_dict(self):
        return {
            'error': self.__class__.__name__,
            'message': self.message
        }


class ConfigurationError(HyperdriveError):
    message = 'Entering an API Blueprint hyperdrive without a base URL.'


class TransportError(HyperdriveError):
    """
    Raised when the transport could not complete a request. The exception raised by :mod:`requests` is kept
    unchanged as :attr:`original`.
    """

    def __init__(self, original, message=None):
        self.original = original
        super(TransportError, self).__init__(message or str(original))


class DecodeError(HyperdriveError):
    message = 'Returned JSON object was not of expected type.'

    def __init__(self, message=None, body=None):
        self.body = body
        super(DecodeError, self).__init__(message)


class DescriptionInvalidError(HyperdriveError):
    message = 'Server returned invalid API Blueprint AST.'

    def __init__(self, message=None, errors=None):
        self.errors = list(errors or ())
        super(DescriptionInvalidError, self).__init__(message)

    def _format_errors(self):
        for error in self.errors:
            yield {
                'validationOf': {error.validator: error.validator_value},
                'path': tuple(error.absolute_path),
                'message': error.message
            }

    def as_dict(self):
        dct = super(DescriptionInvalidError, self).as_dict()
        if self.errors:
            dct['errors'] = list(self._format_errors())
        return dct
