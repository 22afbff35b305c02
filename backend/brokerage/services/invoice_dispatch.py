# Overview: Downstream invoice dispatch seam (final vendor invoice on intermediary payment).

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

EXTENSION_KEY = "invoice_dispatcher"


@dataclass(frozen=True)
class DispatchResult:
    sent: bool
    sent_to: str | None = None
    error: str | None = None


class InvoiceDispatcher:
    """
    Sends the downstream invoice for a job.

    Implementations report failure through DispatchResult.error (or by
    raising); the payment workflow never rolls a milestone back for it.
    """

    def send_downstream_invoice(self, job) -> DispatchResult:
        raise NotImplementedError


class LoggingInvoiceDispatcher(InvoiceDispatcher):
    """Default dispatcher: records the send in the app log only."""

    def __init__(self, recipient: str | None = None):
        self.recipient = recipient

    def send_downstream_invoice(self, job) -> DispatchResult:
        recipient = self.recipient or current_app.config.get("DOWNSTREAM_INVOICE_RECIPIENT")
        if not recipient:
            return DispatchResult(sent=False, error="No downstream invoice recipient configured")
        current_app.logger.info("Downstream invoice for job %s sent to %s", job.job_number, recipient)
        return DispatchResult(sent=True, sent_to=recipient)


def get_dispatcher() -> InvoiceDispatcher:
    dispatcher = current_app.extensions.get(EXTENSION_KEY)
    if dispatcher is None:
        dispatcher = LoggingInvoiceDispatcher()
        current_app.extensions[EXTENSION_KEY] = dispatcher
    return dispatcher


def set_dispatcher(app, dispatcher: InvoiceDispatcher) -> None:
    app.extensions[EXTENSION_KEY] = dispatcher
