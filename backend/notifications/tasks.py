"""
Outbox task handlers for push fan-out.

A handler raises ``TransientDeliveryError`` when some recipient could not
be reached for a transient reason, so the outbox retries it with back-off.
Recipients already recorded are skipped on the retry.
"""

from core.tasks import register_task

from .services import FanoutSummary, NotificationFanoutService, TransientDeliveryError


def _raise_if_transient(summary: FanoutSummary) -> None:
    if summary.transient:
        raise TransientDeliveryError(f"{summary.transient} recipient(s) had a transient delivery failure.")


@register_task("notifications.fanout_new_case")
def fanout_new_case(case_id: str) -> None:
    _raise_if_transient(NotificationFanoutService.fanout_new_case(case_id))


@register_task("notifications.mute_on_claim")
def mute_on_claim(case_id: str, claimer_id: int) -> None:
    _raise_if_transient(NotificationFanoutService.mute_on_claim(case_id, claimer_id))


@register_task("notifications.notify_reporter")
def notify_reporter(case_id: str, status: str) -> None:
    _raise_if_transient(NotificationFanoutService.notify_reporter(case_id, status))
