"""
Match-key strategies pairing local records with their SIS counterparts.

A strategy holds one key function per side. Both functions must reduce the
same real-world entity to the same string, otherwise nothing pairs. A record
that cannot produce a key raises MatchKeyError, which the reconciler treats as
a diagnostic rather than a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

from sis_sync.errors import MatchKeyError

from .normalize import digits_only, normalize, normalize_folded, normalize_integer

KeyFunction = Callable[[Any], "str | None"]
Side = Literal["local", "remote"]

STUDENT_MATCH_FIELDS: tuple[str, ...] = ("student_number", "fteid")


@dataclass(frozen=True)
class MatchKey:
    """Named pair of key functions for one entity type."""

    entity: str
    name: str
    local: KeyFunction
    remote: KeyFunction
    description: str = ""

    def key_for(self, record: Any, side: Side) -> str:
        func = self.local if side == "local" else self.remote
        key = func(record)
        if key is None:
            raise MatchKeyError(self.entity, f"{side} record has no usable {self.name}")
        return key


def _attribute(name: str, reducer: Callable[[Any], "str | None"]) -> KeyFunction:
    def _key(record: Any) -> str | None:
        return reducer(getattr(record, name, None))

    _key.__name__ = f"{name}_key"
    return _key


def student_number_key(*, numeric: bool = True) -> MatchKey:
    """
    Key students by student number.

    With ``numeric`` the template types the column as an integer, so ``"01001"``
    and ``1001`` pair the way the SIS compares them.
    """

    reducer = normalize_integer if numeric else normalize
    func = _attribute("student_number", reducer)
    return MatchKey(
        entity="student",
        name="StudentNumber",
        local=func,
        remote=func,
        description="integer student number" if numeric else "student number",
    )


def fteid_key() -> MatchKey:
    func = _attribute("fteid", normalize)
    return MatchKey(entity="student", name="FTEID", local=func, remote=func, description="FTE identifier")


def student_match_key(field: str = "student_number", *, numeric: bool = True) -> MatchKey:
    """Resolve the configured student match field into a strategy."""

    field = (field or "").strip().lower()
    if field == "student_number":
        return student_number_key(numeric=numeric)
    if field == "fteid":
        return fteid_key()
    raise ValueError(f"Unsupported student match field '{field}'. Expected one of: {', '.join(STUDENT_MATCH_FIELDS)}")


def contact_identifier_key() -> MatchKey:
    # Contacts are pre-correlated: the local identifier is the SIS person's external id.
    func = _attribute("contact_identifier", normalize)
    return MatchKey(
        entity="contact",
        name="ContactIdentifier",
        local=func,
        remote=func,
        description="contact identifier / person external id",
    )


def email_key() -> MatchKey:
    func = _attribute("email_address", normalize_folded)
    return MatchKey(entity="email", name="EmailAddress", local=func, remote=func, description="case-folded address")


def phone_key() -> MatchKey:
    func = _attribute("phone_number", digits_only)
    return MatchKey(entity="phone", name="PhoneNumber", local=func, remote=func, description="digits only")


def _address_composite(record: Any) -> str | None:
    street = normalize_folded(getattr(record, "street", None))
    city = normalize_folded(getattr(record, "city", None))
    postal = normalize_folded(getattr(record, "postal_code", None))
    if street is None and city is None and postal is None:
        return None
    return f"{street or ''}|{city or ''}|{postal or ''}"


def address_key() -> MatchKey:
    # Exact match only: "St" and "Street" are different keys on purpose.
    return MatchKey(
        entity="address",
        name="Street|City|PostalCode",
        local=_address_composite,
        remote=_address_composite,
        description="street|city|postal, case-folded",
    )


def relationship_key(*, numeric: bool = True) -> MatchKey:
    # Scoped per contact, so the student number alone identifies the relationship.
    reducer = normalize_integer if numeric else normalize
    func = _attribute("student_number", reducer)
    return MatchKey(entity="relationship", name="StudentNumber", local=func, remote=func, description="student number")
