"""
Application layer interfaces (ports).

These protocols define the contracts between the application layer
and the collaborators it drives, following the Dependency Inversion Principle.
"""

from src.application.interfaces.services import (IEmailService,
                                                  INotificationService,
                                                  IPracticeStorage)

__all__ = [
    "IPracticeStorage",
    "INotificationService",
    "IEmailService",
]
