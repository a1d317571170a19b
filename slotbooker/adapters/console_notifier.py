"""
Notifier that prints notifications to the terminal instead of emailing them.
"""

import logging
from typing import Optional

from rich.console import Console

from ..domain.appointment import Appointment
from ..domain.models import NotificationType


logger = logging.getLogger(__name__)


SUBJECTS = {
    NotificationType.CONFIRMATION: "Appointment confirmed",
    NotificationType.REMINDER: "Appointment reminder",
    NotificationType.CANCELLATION: "Appointment cancelled",
}


class ConsoleNotifier:
    """
    Renders one line per notification on a rich console.

    Useful for the CLI and local runs where no mail transport is configured.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def send(
        self,
        notification_type: NotificationType,
        appointment: Appointment,
        reason: Optional[str] = None,
    ) -> None:
        subject = SUBJECTS[NotificationType(notification_type)]
        line = (
            f"[bold]{subject}[/bold] → {appointment.customer.email}: "
            f"{appointment.appointment_date.isoformat()} {appointment.slot}"
        )
        if reason:
            line += f" [dim]({reason})[/dim]"

        self.console.print(line)
        logger.debug("Printed %s notification for appointment %s", notification_type, appointment.id)
