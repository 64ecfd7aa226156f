from abc import ABC, abstractmethod
from datetime import datetime


class Notifier(ABC):
    """Delivery collaborator for one-time passcodes (email/SMS)"""

    @abstractmethod
    async def send_otp(self, email: str, code: str, expires_at: datetime) -> None:
        """
        Hand the code to the delivery channel.

        Delivery outcome does not affect the stored challenge.
        """
        pass
