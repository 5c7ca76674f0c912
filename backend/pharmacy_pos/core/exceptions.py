"""
Checkout exceptions and their safe HTTP translation.

Services raise the domain exceptions below. Routes turn them into
HTTPExceptions through BusinessError so internal details (SQL errors,
stack traces) never reach the pharmacist, only a readable reason.
"""
from typing import Optional

from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    """Base class for every failure of a checkout submission."""


class CheckoutValidationError(CheckoutError):
    """Bad input: empty basket, bad price, bad quantity, bad line index.

    Raised before anything is persisted; the caller can fix and resubmit.
    """


class CatalogLookupError(CheckoutError):
    """A referenced template, drug or customer does not exist."""

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")


class OrderPersistenceError(CheckoutError):
    """
    Writing the order failed.

    stage is "header" or "items". order_id is set only when a header row
    was committed and left behind without items (sequential write mode).
    """

    def __init__(self, stage: str, message: str, order_id: Optional[int] = None):
        self.stage = stage
        self.order_id = order_id
        super().__init__(message)


class BusinessError:
    """HTTPException factory with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        404 for unknown resources.

        Example:
            if not order:
                raise BusinessError.not_found("Order")
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Generic 401 for all authentication failures."""
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.

        OK to include specific details here since the pharmacist caused the issue.
        Examples: "Basket is empty", "Price must be a finite number >= 0"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def submission_failed(error: CheckoutError) -> HTTPException:
        """
        Map a failed checkout submission to a single HTTP outcome.

        The basket is never cleared on failure, so the pharmacist can retry.
        """
        if isinstance(error, CheckoutValidationError):
            return BusinessError.bad_request(f"Submission failed: {error}")
        if isinstance(error, CatalogLookupError):
            logger.info(f"Submission failed, lookup: {error}")
            return HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Submission failed: {error}",
            )
        logger.error(f"Submission failed: {type(error).__name__}: {error}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Submission failed: the order could not be saved. Please try again.",
        )
