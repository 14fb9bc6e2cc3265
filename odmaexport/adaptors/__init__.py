"""
Repository adaptor loading.

An adaptor is a module exposing ``get_session(properties) -> OdmaSession``.
It is named either by module path (AdaptorClass) or by a registered system
id (AdaptorSystemId).
"""

import importlib
from typing import Dict

from ..api import OdmaSession
from ..config import Config
from ..exceptions import AdaptorError
from ..utils import logger

ADAPTOR_REGISTRY: Dict[str, str] = {
    "memory": "odmaexport.adaptors.memory",
}


def register_adaptor(system_id: str, module_path: str):
    ADAPTOR_REGISTRY[system_id] = module_path


def resolve_adaptor(config: Config) -> str:
    if config.adaptor:
        return config.adaptor
    try:
        return ADAPTOR_REGISTRY[config.adaptor_system_id]
    except KeyError:
        raise AdaptorError(
            f"No adaptor registered for system id '{config.adaptor_system_id}'",
            adaptor=config.adaptor_system_id,
        ) from None


def get_session(config: Config) -> OdmaSession:
    module_path = resolve_adaptor(config)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise AdaptorError(f"Can not load adaptor: {e}", adaptor=module_path) from e

    factory = getattr(module, "get_session", None)
    if not callable(factory):
        raise AdaptorError(
            "Adaptor module has no get_session(properties) function",
            adaptor=module_path,
        )
    logger.info(f"Opening session with adaptor {module_path}")
    return factory(dict(config.session_properties))
