"""
Error taxonomy for the asset gateway.

Everything except ParseError is turned into an HTTP response by the
gateway; ParseError is recovered where rule files are read.
"""


class GatewayError(Exception):
    """Base class for errors the gateway knows how to report."""
    status_code = 502


class ParseError(GatewayError):
    """A rule file could not be understood at all."""


class NotFound(GatewayError):
    status_code = 404


class NotAcceptable(GatewayError):
    """The client excluded every encoding we can produce."""


class ProxyFailure(GatewayError):
    """Forwarding to the proxied process failed at the network level."""


class InternalInconsistency(GatewayError):
    """An asset key reached fetch without having been resolved first."""


class NotConfigured(GatewayError):
    """Neither a proxy port nor a directory was given."""
