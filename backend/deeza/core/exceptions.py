"""
Error taxonomy for the gift bot, plus safe HTTP errors for the API.

SECURITY PRINCIPLE: Don't expose internal details to users.
Every error carries a human-readable `user_message`; the raw cause is logged only.
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class GiftError(Exception):
    """Base class for gateway failures surfaced to the orchestrator."""

    user_message = "Something went wrong with the gift. Please try again."
    retryable = False

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail


class AlreadyClaimed(GiftError):
    user_message = "This gift has already been claimed! Someone beat you to it."


class NotDeposited(GiftError):
    user_message = "Gift not deposited yet. Wait for the gifter to deposit the funds first!"


class LockedOut(GiftError):
    """Claim attempts are locked until the on-chain claim deadline passes."""

    user_message = "You're still locked out from wrong answers. Wait a bit and try again later!"

    def __init__(self, remaining_seconds: int = 0, detail: str = ""):
        super().__init__(detail or f"locked for {remaining_seconds}s")
        self.remaining_seconds = max(0, int(remaining_seconds))


class Unauthorized(GiftError):
    user_message = "Bot configuration error. Contact support."


class NotFound(GiftError):
    user_message = "Gift not found. Double-check that code - maybe a typo?"


class DuplicateGift(GiftError):
    """A gift with this id is already on chain."""

    user_message = "That gift code is already taken. Please start the gift again."


class NetworkTimeout(GiftError):
    """Generic transient chain failure (RPC timeout, dropped tx, unknown revert)."""

    user_message = "Somnia network is slow right now. Try again in a moment!"
    retryable = True


class GatewayNotConfigured(GiftError):
    user_message = "Contract not deployed or bot key missing!"


# Authoritative rejections are final for the current attempt and never retried
AUTHORITATIVE_REJECTIONS = (AlreadyClaimed, NotDeposited, LockedOut, Unauthorized, NotFound, DuplicateGift)


class ContentStoreError(Exception):
    """Upload or fetch of a gift content blob failed."""

    user_message = "Error uploading gift data. Please try again."


class ApiError:
    """API-facing exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        if reason:
            logger.info(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.
        OK to include specific details here since user caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def unavailable(original_error: Exception = None) -> HTTPException:
        """503 when the chain cannot be reached; the cause is logged, not returned."""
        if original_error:
            logger.warning(f"Upstream unavailable: {type(original_error).__name__}: {original_error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Network is slow right now. Please try again later.",
        )

