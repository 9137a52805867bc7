"""Broker REST clients."""

from .alpaca_rest import AlpacaRestClient

__all__ = ["AlpacaRestClient"]
