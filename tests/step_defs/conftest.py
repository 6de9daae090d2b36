"""Shared BDD step definitions for all feature files.

Step definitions used by more than one feature live here because only
conftest.py modules are auto-discovered by pytest; module-local steps stay
in their test_*_steps.py files.

All parametric steps use parsers.parse(); plain strings are matched exactly.
"""
from pytest_bdd import given, parsers, then, when

from hooklab.seed import seed_webhooks
from tests.fixtures.payloads import make_generator


# ── Given ──────────────────────────────────────────────────────────────────────

@given("a seeded fixture generator")
def seeded_generator(context):
    context["generator"] = make_generator()


@given(parsers.parse('a fixture generator signing with secret "{secret}"'))
def signing_generator(secret, context):
    context["generator"] = make_generator(signing_secret=secret)


@given(parsers.parse("{n:d} seeded webhooks"))
def seeded_webhooks(n, db_session, context):
    context["seeded_ids"] = seed_webhooks(db_session, count=n, generator=make_generator())


# ── When ───────────────────────────────────────────────────────────────────────

@when(parsers.parse('I generate a "{event_type}" event'))
def generate_event(event_type, context):
    context["event"] = context["generator"].generate_event(event_type)


@when(parsers.parse('I generate a "{event_type}" delivery record'))
def generate_delivery_record(event_type, context):
    context["record"] = context["generator"].generate_delivery_record(event_type)


# ── Then ───────────────────────────────────────────────────────────────────────

@then(parsers.parse("the response status should be {code:d}"))
def check_status_code(code, context):
    assert context["response"].status_code == code, (
        f"Expected {code}, got {context['response'].status_code}: "
        f"{context['response'].text}"
    )


@then("a value error should be raised")
def check_value_error(context):
    assert isinstance(context.get("error"), ValueError), (
        f"Expected ValueError, got {context.get('error')!r}"
    )
