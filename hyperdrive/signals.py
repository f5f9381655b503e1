from blinker import Namespace

_hyperdrive = Namespace()

request_started = _hyperdrive.signal('request-started')

response_received = _hyperdrive.signal('response-received')

representor_constructed = _hyperdrive.signal('representor-constructed')
