from payroll_admin.core.notifications import IMPORT_SECONDS, Notifier
from payroll_admin.services.api_client import NetworkError, ValidationFailed


def test_banner_expires_after_three_seconds(notifier, clock):
    notifier.show("Saved.")
    assert notifier.current().message == "Saved."
    clock.advance(2.9)
    assert notifier.current() is not None
    clock.advance(0.1)
    assert notifier.current() is None


def test_newer_banner_replaces_older(notifier):
    notifier.show("first")
    notifier.show("second", "error", seconds=IMPORT_SECONDS)
    banner = notifier.current()
    assert (banner.message, banner.level) == ("second", "error")


def test_error_banner_uses_friendly_text(notifier):
    notifier.error(NetworkError("connect failed"))
    assert notifier.current().message == "No response from server. Please check your connection."

    notifier.error(ValidationFailed("Validation failed", {"meals": ["The meals must be a number."]}))
    assert notifier.current().message == "The meals must be a number."


def test_listeners_see_every_banner(clock):
    seen = []
    notifier = Notifier(clock=clock)
    notifier.listeners.append(seen.append)

    notifier.show("one")
    notifier.show("two", "error")

    assert [(b.message, b.level) for b in seen] == [("one", "success"), ("two", "error")]
    assert seen[0].expires_at == clock.now + 3.0


def test_dismiss(notifier):
    notifier.show("bye")
    notifier.dismiss()
    assert notifier.current() is None
