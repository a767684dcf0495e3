"""Service layer: front-end facing entry points."""

from .exchange_service import ExchangeService

__all__ = ["ExchangeService"]
