"""Shared presentation module."""

from membership_checkout.shared.presentation.exception_handlers import register_exception_handlers
from membership_checkout.shared.presentation.api_response import APIResponse

__all__ = ["register_exception_handlers", "APIResponse"]
