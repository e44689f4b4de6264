"""
Custom exceptions for the exchange-rate exporter.
Every failure the poll loop or the server can hit maps to one of these.
"""


class BaseExporterException(Exception):
    """Base exception for the exchange-rate exporter"""
    pass


class FetchError(BaseExporterException):
    """Transport-level failure reaching the upstream rates API"""
    pass


class ParseError(BaseExporterException):
    """Upstream response body is not valid JSON of the expected shape"""
    pass


class BindError(BaseExporterException):
    """Metrics server could not acquire its listening port"""
    pass


class ConfigurationError(BaseExporterException):
    """Error in configuration loading or validation"""
    pass
