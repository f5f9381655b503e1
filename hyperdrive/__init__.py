from .blueprint import HyperBlueprint
from .client import Hyperdrive
from .config import Config
from .description import Blueprint
from .exceptions import (ConfigurationError, DecodeError, DescriptionInvalidError, HyperdriveError,
                         TransportError)
from .representor import InputProperty, Representor, RepresentorBuilder, Transition, TransitionBuilder

__all__ = (
    'Hyperdrive',
    'HyperBlueprint',
    'Blueprint',
    'Config',
    'Representor',
    'RepresentorBuilder',
    'Transition',
    'TransitionBuilder',
    'InputProperty',
    'HyperdriveError',
    'ConfigurationError',
    'TransportError',
    'DecodeError',
    'DescriptionInvalidError',
    'description',
    'deserialization',
    'signals',
    'uri',
)
