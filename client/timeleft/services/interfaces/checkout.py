"""
Hosted checkout interface.
The payment widget is a third-party collaborator; the client only hands it
an order and waits for the payer's result.
"""

from abc import ABC, abstractmethod
from typing import Optional

from timeleft.schemas.payment import CheckoutOptions, CheckoutResult


class CheckoutGateway(ABC):
    """
    Interface for the third-party checkout overlay.

    A result coming back from `open` proves nothing by itself: it must be
    verified by the server before the payment counts.
    """

    @abstractmethod
    async def load(self) -> bool:
        """
        Load the gateway runtime (script, SDK, browser window...).

        Returns:
            True when the checkout can be opened
        """
        pass

    @abstractmethod
    async def open(self, options: CheckoutOptions) -> Optional[CheckoutResult]:
        """
        Present the checkout for one order.

        Returns:
            The signed payment result, or None if the payer dismissed it
        """
        pass
