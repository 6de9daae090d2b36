import enum
import json
import logging
import random
import string
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from faker import Faker

from hooklab.signature import compute_signature, format_signature_header

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_SUFFIX_LENGTH = 24


class EventType(str, enum.Enum):
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_INTENT_CANCELED = "payment_intent.canceled"
    CHARGE_SUCCEEDED = "charge.succeeded"
    CHARGE_REFUNDED = "charge.refunded"
    CHARGE_FAILED = "charge.failed"
    CHARGE_DISPUTE_CREATED = "charge.dispute.created"
    CHARGE_DISPUTE_CLOSED = "charge.dispute.closed"
    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_DELETED = "customer.deleted"
    CUSTOMER_SUBSCRIPTION_CREATED = "customer.subscription.created"
    CUSTOMER_SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    CUSTOMER_SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_CREATED = "invoice.created"
    INVOICE_FINALIZED = "invoice.finalized"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    INVOICE_UPCOMING = "invoice.upcoming"
    INVOICE_VOIDED = "invoice.voided"
    PAYOUT_PAID = "payout.paid"
    PAYOUT_FAILED = "payout.failed"
    REFUND_CREATED = "refund.created"
    REFUND_UPDATED = "refund.updated"
    PRODUCT_CREATED = "product.created"
    PRICE_CREATED = "price.created"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_EXPIRED = "checkout.session.expired"
    PAYMENT_METHOD_ATTACHED = "payment_method.attached"
    TRANSFER_CREATED = "transfer.created"
    BALANCE_AVAILABLE = "balance.available"
    ACCOUNT_UPDATED = "account.updated"


class ConfigurationError(Exception):
    """An event type has no payload builder registered."""


@dataclass(frozen=True)
class GeneratorConfig:
    currencies: tuple[str, ...] = ("usd", "eur", "gbp", "brl")
    min_amount: int = 500
    max_amount: int = 125_000
    pathnames: tuple[str, ...] = (
        "/stripe/webhook",
        "/webhooks/stripe",
        "/stripe",
        "/integrations/stripe/webhook",
    )
    # 200 is repeated to bias deliveries toward success
    status_codes: tuple[int, ...] = (200, 200, 200, 400, 401, 404, 500)
    min_attempt: int = 1
    max_attempt: int = 3
    recent_days: int = 30
    api_version: str = "2024-09-30"
    user_agent: str | None = None
    accept_encoding: str = "gzip,compress,br"


@dataclass
class EventContext:
    """Values shared by every sub-object of a single synthetic event.

    Identifiers for the same logical entity are drawn once here and reused
    by the payload builders, so a charge nested in a payment intent carries
    the same customer as its parent.
    """

    rng: random.Random
    fake: Faker
    now: int
    currency: str
    amount: int
    customer_id: str
    payment_intent_id: str
    charge_id: str
    invoice_id: str
    subscription_id: str

    def pick(self, choices: Sequence[Any]) -> Any:
        return self.rng.choice(choices)

    def between(self, low: int, high: int) -> int:
        return self.rng.randint(low, high)

    def flag(self) -> bool:
        return self.rng.random() < 0.5

    def stripe_id(self, prefix: str) -> str:
        return stripe_id(self.rng, prefix)


@dataclass
class DeliveryRecord:
    method: str
    pathname: str
    ip: str
    status_code: int
    content_type: str
    content_length: int
    query_params: dict[str, str]
    headers: dict[str, str]
    body: str
    created_at: datetime
    event_type: EventType

    def to_row(self) -> dict[str, Any]:
        """Column values for the storage layer (event type is not persisted)."""
        row = asdict(self)
        row.pop("event_type")
        return row


def stripe_id(rng: random.Random, prefix: str) -> str:
    suffix = "".join(rng.choices(ID_ALPHABET, k=ID_SUFFIX_LENGTH))
    return f"{prefix}_{suffix}"


def body_byte_length(body: str) -> int:
    return len(body.encode("utf-8"))


# ── Payload builders ───────────────────────────────────────────────────────────

def _payment_intent(ctx: EventContext, status: str) -> dict[str, Any]:
    return {
        "id": ctx.payment_intent_id,
        "object": "payment_intent",
        "amount": ctx.amount,
        "currency": ctx.currency,
        "customer": ctx.customer_id,
        "status": status,
    }


def build_payment_intent_succeeded(ctx: EventContext) -> dict[str, Any]:
    payload = _payment_intent(ctx, "succeeded")
    payload["charges"] = {
        "data": [
            {
                "id": ctx.charge_id,
                "object": "charge",
                "amount": ctx.amount,
                "currency": ctx.currency,
                "customer": ctx.customer_id,
                "payment_intent": ctx.payment_intent_id,
                "paid": True,
                "status": "succeeded",
            }
        ]
    }
    return payload


def build_payment_intent_payment_failed(ctx: EventContext) -> dict[str, Any]:
    payload = _payment_intent(ctx, "requires_payment_method")
    payload["last_payment_error"] = {
        "code": "card_declined",
        "doc_url": "https://stripe.com/docs/error-codes",
    }
    return payload


def build_payment_intent_canceled(ctx: EventContext) -> dict[str, Any]:
    payload = _payment_intent(ctx, "canceled")
    payload["cancellation_reason"] = ctx.pick(
        ["abandoned", "requested_by_customer", "duplicate"]
    )
    return payload


def _charge(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.charge_id,
        "object": "charge",
        "amount": ctx.amount,
        "currency": ctx.currency,
        "customer": ctx.customer_id,
        "payment_intent": ctx.payment_intent_id,
    }


def build_charge_succeeded(ctx: EventContext) -> dict[str, Any]:
    return {**_charge(ctx), "paid": True, "status": "succeeded"}


def build_charge_refunded(ctx: EventContext) -> dict[str, Any]:
    # Partial or full refund: half of the charge up to all of it
    return {
        **_charge(ctx),
        "refunded": True,
        "amount_refunded": ctx.between(ctx.amount // 2, ctx.amount),
    }


def build_charge_failed(ctx: EventContext) -> dict[str, Any]:
    return {
        **_charge(ctx),
        "paid": False,
        "status": "failed",
        "failure_code": "card_declined",
    }


def _dispute(ctx: EventContext, reason: str, status: str) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("dp"),
        "object": "dispute",
        "amount": ctx.amount,
        "currency": ctx.currency,
        "charge": ctx.charge_id,
        "reason": reason,
        "status": status,
    }


def build_charge_dispute_created(ctx: EventContext) -> dict[str, Any]:
    reason = ctx.pick(["fraudulent", "duplicate", "product_not_received"])
    return _dispute(ctx, reason, "warning_needs_response")


def build_charge_dispute_closed(ctx: EventContext) -> dict[str, Any]:
    return _dispute(ctx, "fraudulent", ctx.pick(["won", "lost"]))


def build_customer_created(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.customer_id,
        "object": "customer",
        "email": ctx.fake.email(),
        "name": ctx.fake.name(),
    }


def build_customer_deleted(ctx: EventContext) -> dict[str, Any]:
    return {"id": ctx.customer_id, "object": "customer", "deleted": True}


def _subscription(ctx: EventContext, status: str) -> dict[str, Any]:
    return {
        "id": ctx.subscription_id,
        "object": "subscription",
        "customer": ctx.customer_id,
        "status": status,
    }


def _subscription_items(ctx: EventContext) -> dict[str, Any]:
    return {
        "data": [
            {
                "id": ctx.stripe_id("si"),
                "subscription": ctx.subscription_id,
                "price": {
                    "id": ctx.stripe_id("price"),
                    "unit_amount": ctx.amount,
                    "currency": ctx.currency,
                },
            }
        ]
    }


def build_subscription_created(ctx: EventContext) -> dict[str, Any]:
    return {**_subscription(ctx, "active"), "items": _subscription_items(ctx)}


def build_subscription_updated(ctx: EventContext) -> dict[str, Any]:
    status = ctx.pick(["active", "past_due", "unpaid"])
    return {**_subscription(ctx, status), "items": _subscription_items(ctx)}


def build_subscription_deleted(ctx: EventContext) -> dict[str, Any]:
    return {**_subscription(ctx, "canceled"), "cancel_at_period_end": ctx.flag()}


def _invoice(ctx: EventContext, status: str) -> dict[str, Any]:
    return {
        "id": ctx.invoice_id,
        "object": "invoice",
        "customer": ctx.customer_id,
        "subscription": ctx.subscription_id,
        "amount_due": ctx.amount,
        "currency": ctx.currency,
        "status": status,
    }


def build_invoice_created(ctx: EventContext) -> dict[str, Any]:
    return _invoice(ctx, "draft")


def build_invoice_finalized(ctx: EventContext) -> dict[str, Any]:
    return {**_invoice(ctx, "open"), "finalized_at": ctx.now}


def build_invoice_payment_succeeded(ctx: EventContext) -> dict[str, Any]:
    return {
        **_invoice(ctx, "paid"),
        "amount_paid": ctx.amount,
        "payment_intent": ctx.payment_intent_id,
        "charge": ctx.charge_id,
    }


def build_invoice_payment_failed(ctx: EventContext) -> dict[str, Any]:
    return {
        **_invoice(ctx, "open"),
        "amount_paid": 0,
        "payment_intent": ctx.payment_intent_id,
        "charge": ctx.charge_id,
    }


def build_invoice_upcoming(ctx: EventContext) -> dict[str, Any]:
    return {**_invoice(ctx, "draft"), "next_payment_attempt": ctx.now + 3600 * 24}


def build_invoice_voided(ctx: EventContext) -> dict[str, Any]:
    return _invoice(ctx, "void")


def _payout(ctx: EventContext, status: str) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("po"),
        "object": "payout",
        "amount": ctx.amount,
        "currency": ctx.currency,
        "status": status,
    }


def build_payout_paid(ctx: EventContext) -> dict[str, Any]:
    return _payout(ctx, "paid")


def build_payout_failed(ctx: EventContext) -> dict[str, Any]:
    return {**_payout(ctx, "failed"), "failure_code": "insufficient_funds"}


def _refund(ctx: EventContext, status: str) -> dict[str, Any]:
    # A third of the charge up to all of it
    return {
        "id": ctx.stripe_id("re"),
        "object": "refund",
        "amount": ctx.between(ctx.amount // 3, ctx.amount),
        "currency": ctx.currency,
        "charge": ctx.charge_id,
        "payment_intent": ctx.payment_intent_id,
        "status": status,
    }


def build_refund_created(ctx: EventContext) -> dict[str, Any]:
    return _refund(ctx, "succeeded")


def build_refund_updated(ctx: EventContext) -> dict[str, Any]:
    return _refund(ctx, ctx.pick(["succeeded", "failed", "canceled"]))


def build_product_created(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("prod"),
        "object": "product",
        "name": f"{ctx.fake.color_name()} {ctx.fake.word().capitalize()}",
        "active": True,
    }


def build_price_created(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("price"),
        "object": "price",
        "unit_amount": ctx.amount,
        "currency": ctx.currency,
        "recurring": {"interval": ctx.pick(["month", "year"])},
        "product": ctx.stripe_id("prod"),
    }


def _checkout_session(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("cs"),
        "object": "checkout.session",
        "mode": ctx.pick(["payment", "subscription"]),
        "amount_total": ctx.amount,
        "currency": ctx.currency,
        "customer": ctx.customer_id,
    }


def build_checkout_session_completed(ctx: EventContext) -> dict[str, Any]:
    return {**_checkout_session(ctx), "payment_intent": ctx.payment_intent_id}


def build_checkout_session_expired(ctx: EventContext) -> dict[str, Any]:
    return {**_checkout_session(ctx), "expired": True}


def build_payment_method_attached(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("pm"),
        "object": "payment_method",
        "customer": ctx.customer_id,
        "type": ctx.pick(["card", "boleto", "pix", "bank_transfer"]),
        "card": {
            "brand": ctx.pick(["visa", "mastercard", "amex"]),
            "last4": "".join(ctx.rng.choices(string.digits, k=4)),
        },
    }


def build_transfer_created(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("tr"),
        "object": "transfer",
        "amount": ctx.amount,
        "currency": ctx.currency,
        "destination": ctx.stripe_id("acct"),
    }


def build_balance_available(ctx: EventContext) -> dict[str, Any]:
    return {
        "object": "balance",
        "available": [{"currency": ctx.currency, "amount": ctx.amount}],
        "pending": [{"currency": ctx.currency, "amount": ctx.between(0, 50_000)}],
    }


def build_account_updated(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": ctx.stripe_id("acct"),
        "object": "account",
        "business_profile": {"name": ctx.fake.company()},
        "charges_enabled": ctx.flag(),
    }


PayloadBuilder = Callable[[EventContext], dict[str, Any]]

PAYLOAD_BUILDERS: dict[EventType, PayloadBuilder] = {
    EventType.PAYMENT_INTENT_SUCCEEDED: build_payment_intent_succeeded,
    EventType.PAYMENT_INTENT_PAYMENT_FAILED: build_payment_intent_payment_failed,
    EventType.PAYMENT_INTENT_CANCELED: build_payment_intent_canceled,
    EventType.CHARGE_SUCCEEDED: build_charge_succeeded,
    EventType.CHARGE_REFUNDED: build_charge_refunded,
    EventType.CHARGE_FAILED: build_charge_failed,
    EventType.CHARGE_DISPUTE_CREATED: build_charge_dispute_created,
    EventType.CHARGE_DISPUTE_CLOSED: build_charge_dispute_closed,
    EventType.CUSTOMER_CREATED: build_customer_created,
    EventType.CUSTOMER_DELETED: build_customer_deleted,
    EventType.CUSTOMER_SUBSCRIPTION_CREATED: build_subscription_created,
    EventType.CUSTOMER_SUBSCRIPTION_UPDATED: build_subscription_updated,
    EventType.CUSTOMER_SUBSCRIPTION_DELETED: build_subscription_deleted,
    EventType.INVOICE_CREATED: build_invoice_created,
    EventType.INVOICE_FINALIZED: build_invoice_finalized,
    EventType.INVOICE_PAYMENT_SUCCEEDED: build_invoice_payment_succeeded,
    EventType.INVOICE_PAYMENT_FAILED: build_invoice_payment_failed,
    EventType.INVOICE_UPCOMING: build_invoice_upcoming,
    EventType.INVOICE_VOIDED: build_invoice_voided,
    EventType.PAYOUT_PAID: build_payout_paid,
    EventType.PAYOUT_FAILED: build_payout_failed,
    EventType.REFUND_CREATED: build_refund_created,
    EventType.REFUND_UPDATED: build_refund_updated,
    EventType.PRODUCT_CREATED: build_product_created,
    EventType.PRICE_CREATED: build_price_created,
    EventType.CHECKOUT_SESSION_COMPLETED: build_checkout_session_completed,
    EventType.CHECKOUT_SESSION_EXPIRED: build_checkout_session_expired,
    EventType.PAYMENT_METHOD_ATTACHED: build_payment_method_attached,
    EventType.TRANSFER_CREATED: build_transfer_created,
    EventType.BALANCE_AVAILABLE: build_balance_available,
    EventType.ACCOUNT_UPDATED: build_account_updated,
}


def check_builders(builders: dict[EventType, PayloadBuilder] = PAYLOAD_BUILDERS) -> None:
    """Raise ConfigurationError unless every EventType has a builder."""
    missing = [t.value for t in EventType if t not in builders]
    if missing:
        raise ConfigurationError(f"No payload builder for: {', '.join(missing)}")


# ── Generator ──────────────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FixtureGenerator:
    """Fabricates Stripe-like webhook deliveries.

    Args:
        rng: Random source. Pass ``random.Random(seed)`` for reproducible output.
        clock: Returns the current aware datetime. Defaults to UTC now.
        signing_secret: When set, ``stripe-signature`` carries a real
            HMAC-SHA256 over the body instead of random hex.
        config: Amount, currency, endpoint and status-code tables.
        builders: EventType -> payload builder table.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        signing_secret: str | None = None,
        config: GeneratorConfig | None = None,
        builders: dict[EventType, PayloadBuilder] | None = None,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock or _utcnow
        self.signing_secret = signing_secret
        self.config = config or GeneratorConfig()
        self.builders = builders if builders is not None else PAYLOAD_BUILDERS
        self.fake = Faker()
        self.fake.seed_instance(self.rng.getrandbits(64))

    def _now(self) -> int:
        return int(self.clock().timestamp())

    def _context(self) -> EventContext:
        cfg = self.config
        return EventContext(
            rng=self.rng,
            fake=self.fake,
            now=self._now(),
            currency=self.rng.choice(cfg.currencies),
            amount=self.rng.randint(cfg.min_amount, cfg.max_amount),
            customer_id=stripe_id(self.rng, "cus"),
            payment_intent_id=stripe_id(self.rng, "pi"),
            charge_id=stripe_id(self.rng, "ch"),
            invoice_id=stripe_id(self.rng, "in"),
            subscription_id=stripe_id(self.rng, "sub"),
        )

    def generate_event(self, event_type: EventType | str) -> dict[str, Any]:
        """Build one event envelope with its payload under ``data.object``."""
        event_type = EventType(event_type)
        builder = self.builders.get(event_type)
        if builder is None:
            raise ConfigurationError(f"No payload builder for {event_type.value!r}")

        ctx = self._context()
        return {
            "id": stripe_id(self.rng, "evt"),
            "object": "event",
            "api_version": self.config.api_version,
            "created": ctx.now,
            "livemode": ctx.flag(),
            "pending_webhooks": self.rng.randint(0, 2),
            "request": {
                "id": stripe_id(self.rng, "req"),
                "idempotency_key": self.fake.uuid4(),
            },
            "type": event_type.value,
            "data": {"object": builder(ctx)},
        }

    def _signature_header(self, body: str) -> str:
        timestamp = self._now()
        if self.signing_secret:
            signature = compute_signature(self.signing_secret, timestamp, body.encode("utf-8"))
        else:
            signature = f"{self.rng.getrandbits(256):064x}"
        return format_signature_header(timestamp, signature)

    def generate_headers(self, serialized_body: str) -> dict[str, str]:
        return {
            "user-agent": self.config.user_agent or self.fake.user_agent(),
            "content-type": "application/json",
            "content-length": str(body_byte_length(serialized_body)),
            "stripe-signature": self._signature_header(serialized_body),
            "stripe-account": stripe_id(self.rng, "acct"),
            "accept-encoding": self.config.accept_encoding,
        }

    def _created_at(self) -> datetime:
        window = timedelta(days=self.config.recent_days).total_seconds()
        return self.clock() - timedelta(seconds=self.rng.uniform(0, window))

    def generate_delivery_record(self, event_type: EventType | str) -> DeliveryRecord:
        cfg = self.config
        event = self.generate_event(event_type)
        body = json.dumps(event, indent=2, ensure_ascii=False)
        headers = self.generate_headers(body)
        attempt = self.rng.randint(cfg.min_attempt, cfg.max_attempt)

        return DeliveryRecord(
            method="POST",
            pathname=self.rng.choice(cfg.pathnames),
            ip=self.fake.ipv4_public(),
            status_code=self.rng.choice(cfg.status_codes),
            content_type="application/json",
            content_length=int(headers["content-length"]),
            query_params={
                "livemode": str(event["livemode"]).lower(),
                "attempt": str(attempt),
            },
            headers=headers,
            body=body,
            created_at=self._created_at(),
            event_type=EventType(event["type"]),
        )

    def generate_batch(
        self,
        count: int,
        types: Iterable[EventType | str] | None = None,
        weights: Sequence[float] | None = None,
    ) -> list[DeliveryRecord]:
        """Generate ``count`` independent records.

        Event types are drawn uniformly from ``types`` (all types by default),
        or according to ``weights`` aligned with ``types``.
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")

        pool = [EventType(t) for t in types] if types is not None else list(EventType)
        if not pool:
            raise ValueError("types must contain at least one event type")
        if weights is not None and len(weights) != len(pool):
            raise ValueError("weights must align with types")

        chosen = self.rng.choices(pool, weights=weights, k=count)
        logger.debug("Generating %d delivery record(s) from %d event type(s)", count, len(pool))
        return [self.generate_delivery_record(t) for t in chosen]
