import re
import uuid

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from hooklab.fixtures import (
    PAYLOAD_BUILDERS,
    ConfigurationError,
    EventType,
    GeneratorConfig,
    check_builders,
)
from tests.fixtures.payloads import FIXED_NOW, make_event_context, make_generator

scenarios("fixture_generator.feature")

SHARED_ID = re.compile(r"^(cus|pi|ch|in|sub)_[a-z0-9]{24}$")
SYNTHETIC_ID = re.compile(r"^[a-z]+_[a-z0-9]{24}$")
ID_KEYS = {"id", "customer", "payment_intent", "charge", "invoice", "subscription", "product", "destination"}


@pytest.fixture
def context():
    return {}


def _strings(node):
    if isinstance(node, dict):
        for value in node.values():
            yield from _strings(value)
    elif isinstance(node, list):
        for value in node:
            yield from _strings(value)
    elif isinstance(node, str):
        yield node


def _id_fields(node):
    if isinstance(node, dict):
        for key, value in node.items():
            if key in ID_KEYS and isinstance(value, str):
                yield key, value
            else:
                yield from _id_fields(value)
    elif isinstance(node, list):
        for value in node:
            yield from _id_fields(value)


# ── Given ──────────────────────────────────────────────────────────────────────

@given(parsers.parse("an event context with amount {amount:d}"))
def event_context(amount, context):
    context["ctx"] = make_event_context(amount=amount)
    context["amount"] = amount


@given(parsers.parse('a fixture generator without a "{event_type}" builder'))
def generator_missing_builder(event_type, context):
    builders = {t: b for t, b in PAYLOAD_BUILDERS.items() if t.value != event_type}
    context["builders"] = builders
    context["generator"] = make_generator(builders=builders)


# ── When ───────────────────────────────────────────────────────────────────────

@when(parsers.parse('I generate {n:d} "{event_type}" events'))
def generate_many(n, event_type, context):
    context["events"] = [context["generator"].generate_event(event_type) for _ in range(n)]


@when(parsers.parse('I build {n:d} "{event_type}" payloads'))
def build_payloads(n, event_type, context):
    builder = PAYLOAD_BUILDERS[EventType(event_type)]
    context["payloads"] = [builder(context["ctx"]) for _ in range(n)]


@when(parsers.parse('I try to generate a "{event_type}" event'))
def try_generate(event_type, context):
    try:
        context["generator"].generate_event(event_type)
    except ConfigurationError as exc:
        context["error"] = exc


# ── Then ───────────────────────────────────────────────────────────────────────

@then("every event type should have a payload builder")
def check_all_builders():
    check_builders()
    assert set(PAYLOAD_BUILDERS) == set(EventType)
    assert len(EventType) == 31


@then(parsers.parse('the envelope type should be "{event_type}"'))
def check_envelope_type(event_type, context):
    assert context["event"]["type"] == event_type


@then(parsers.parse('the payload object should be "{kind}"'))
def check_payload_object(kind, context):
    payload = context["event"]["data"]["object"]
    assert payload["object"] == kind, f"Expected {kind!r}, got {payload['object']!r}"


@then("shared entity references in the payload should be consistent")
def check_shared_references(context):
    by_prefix: dict[str, set[str]] = {}
    for value in _strings(context["event"]["data"]["object"]):
        match = SHARED_ID.match(value)
        if match:
            by_prefix.setdefault(match.group(1), set()).add(value)
    for prefix, values in by_prefix.items():
        assert len(values) == 1, f"Several {prefix} ids in one event: {sorted(values)}"


@then("every synthetic identifier should have a 24 character suffix")
def check_identifier_shape(context):
    for key, value in _id_fields(context["event"]["data"]["object"]):
        assert SYNTHETIC_ID.match(value), f"{key}={value!r} is not a synthetic identifier"


@then("the envelope should carry event metadata")
def check_envelope_metadata(context):
    event = context["event"]
    assert event["id"].startswith("evt_")
    assert event["object"] == "event"
    assert event["api_version"] == "2024-09-30"
    assert event["created"] == int(FIXED_NOW.timestamp())
    assert isinstance(event["livemode"], bool)
    assert 0 <= event["pending_webhooks"] <= 2
    assert event["request"]["id"].startswith("req_")
    uuid.UUID(event["request"]["idempotency_key"])


@then("the nested charge should reference the payment intent's customer and id")
def check_nested_charge(context):
    intent = context["event"]["data"]["object"]
    charge = intent["charges"]["data"][0]
    assert intent["customer"].startswith("cus_")
    assert charge["customer"] == intent["customer"]
    assert charge["payment_intent"] == intent["id"]
    assert charge["amount"] == intent["amount"]
    assert charge["currency"] == intent["currency"]


@then("the invoice should be paid in full")
def check_invoice_paid(context):
    invoice = context["event"]["data"]["object"]
    assert invoice["status"] == "paid"
    assert invoice["amount_paid"] == invoice["amount_due"]
    assert invoice["charge"].startswith("ch_")
    assert invoice["payment_intent"].startswith("pi_")


@then("every refunded amount should not exceed the charge amount")
def check_refunded_amounts(context):
    for event in context["events"]:
        charge = event["data"]["object"]
        assert charge["refunded"] is True
        assert charge["amount_refunded"] <= charge["amount"]


@then(parsers.parse('every "{field}" should be between {low:d} and {high:d}'))
def check_field_range(field, low, high, context):
    values = [payload[field] for payload in context["payloads"]]
    assert all(low <= v <= high for v in values), f"Out of range: {values}"


@then(parsers.parse("every payload amount should be between {low:d} and {high:d}"))
def check_amount_range(low, high, context):
    for event in context["events"]:
        assert low <= event["data"]["object"]["amount"] <= high


@then(parsers.parse('every payload currency should be one of "{currencies}"'))
def check_currencies(currencies, context):
    allowed = set(currencies.split(","))
    assert allowed == set(GeneratorConfig().currencies)
    for event in context["events"]:
        assert event["data"]["object"]["currency"] in allowed


@then("a configuration error should be raised")
def check_configuration_error(context):
    assert isinstance(context.get("error"), ConfigurationError)
    with pytest.raises(ConfigurationError):
        check_builders(context["builders"])
