import logging
from datetime import datetime

from src.app.services.notifier import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """
    Stand-in delivery channel: records that a code was dispatched.

    The code itself is never written to the log.
    """

    async def send_otp(self, email: str, code: str, expires_at: datetime) -> None:
        logger.info(f"OTP dispatched to {email}, expires at {expires_at.isoformat()}Z")
