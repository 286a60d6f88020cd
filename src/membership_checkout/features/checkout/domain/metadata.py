"""Order and gateway metadata.

Gateway metadata is the only channel a webhook has back to internal ids, so
both sides of the round trip live here.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from membership_checkout.features.checkout.domain.actors import GuestActor, MemberActor
from membership_checkout.features.checkout.domain.models import ValidatedCheckout
from membership_checkout.features.orders.domain.entities import Order, Payment
from membership_checkout.features.registrations.domain.entities import DomainRecord
from membership_checkout.features.registrations.domain.enums import RecordKind


@dataclass(frozen=True)
class RecordRef:
    """Pointer to the domain record a payment settles."""

    kind: RecordKind
    id: int


def order_metadata(validated: ValidatedCheckout, record: DomainRecord) -> dict[str, Any]:
    """Foreign keys stored on the order."""
    metadata: dict[str, Any] = {
        "record_kind": record.kind.value,
        "record_id": record.id,
        "record_public_id": record.public_id,
        "offering_id": validated.offering.id,
    }
    if record.kind == RecordKind.EVENT_REGISTRATION:
        metadata["event_id"] = validated.offering.id
        if validated.membership_level_id is not None:
            metadata["membership_level_id"] = validated.membership_level_id
    else:
        metadata["membership_level_id"] = validated.offering.id
        metadata["operation_type"] = validated.operation.value if validated.operation else None
    return metadata


def gateway_metadata(
    validated: ValidatedCheckout,
    record: DomainRecord,
    order: Order | None,
    payment: Payment | None,
) -> dict[str, str]:
    """Metadata attached to the gateway checkout session. Values are strings."""
    metadata = {
        "transaction_type": validated.transaction_type.value,
        "order_type": validated.order_type.value,
        "record_kind": record.kind.value,
        "record_id": str(record.id),
        "record_public_id": record.public_id,
        "offering_id": str(validated.offering.id),
    }
    if order is not None:
        metadata["order_id"] = str(order.id)
    if payment is not None:
        metadata["payment_id"] = str(payment.id)

    match validated.actor:
        case MemberActor(user_id=user_id):
            metadata["user_id"] = str(user_id)
        case GuestActor(contact=contact):
            metadata["user_id"] = "guest"
            metadata["guest_email"] = contact.email
            metadata["guest_name"] = contact.full_name
    return metadata


def parse_record_ref(metadata: Mapping[str, Any]) -> RecordRef | None:
    """
    Read the record pointer back out of order or gateway metadata.

    Returns None when the keys are absent. Raises ValueError when present
    but malformed.
    """
    kind = metadata.get("record_kind")
    record_id = metadata.get("record_id")
    if kind is None and record_id is None:
        return None
    if kind is None or record_id is None:
        raise ValueError("record_kind and record_id must be given together")
    return RecordRef(kind=RecordKind(kind), id=int(record_id))


def parse_int(metadata: Mapping[str, Any], key: str) -> int | None:
    """Optional integer id from metadata. Raises ValueError when malformed."""
    value = metadata.get(key)
    if value in (None, ""):
        return None
    return int(value)
