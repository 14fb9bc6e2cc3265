import time
from typing import Any, Dict, Optional


class ExporterError(Exception):
    """
    Base exception for the exporter with extended diagnostics.

    Carries a timestamp and a context dict that is rendered into the message.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.timestamp = time.time()
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" [Context: {context_str}]"
        return base_msg


class ConfigError(ExporterError):
    """
    Configuration error with the offending field.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 field_value: Optional[Any] = None, **kwargs):
        context = kwargs.pop('context', {})
        if field_name:
            context['field'] = field_name
        if field_value is not None:
            context['value'] = str(field_value)[:100]
        super().__init__(message, context=context, **kwargs)


class AdaptorError(ExporterError):
    """
    Raised when the repository adaptor can not be loaded or refuses a session.
    """

    def __init__(self, message: str, adaptor: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if adaptor:
            context['adaptor'] = adaptor
        super().__init__(message, context=context, **kwargs)


class ObjectNotFoundError(ExporterError):
    """
    Raised by a session when an object id does not exist in the repository.
    """

    def __init__(self, message: str, object_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if object_id is not None:
            context['object_id'] = object_id
        self.object_id = object_id
        super().__init__(message, context=context, **kwargs)


class InvariantViolation(ExporterError):
    """
    Unknown or unsupported data type. Never isolated per property.
    """

    def __init__(self, message: str, data_type: Optional[Any] = None,
                 property_name: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if data_type is not None:
            context['data_type'] = str(data_type)
        if property_name:
            context['property'] = property_name
        super().__init__(message, context=context, **kwargs)


class ContentIOError(ExporterError):
    """
    Failure while writing content data files. Aborts the whole run.
    """

    def __init__(self, message: str, path: Optional[Any] = None, **kwargs):
        context = kwargs.pop('context', {})
        if path is not None:
            context['path'] = str(path)
        super().__init__(message, context=context, **kwargs)


# Errors that pass through the per-property isolation of the dumper.
FATAL_ERRORS = (InvariantViolation, ContentIOError)
