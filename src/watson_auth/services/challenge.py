"""Canonical sign-in challenge text.

The wallet signs the exact bytes produced by :func:`build_message`, so the
layout below is a wire contract::

    {domain} wants you to sign in with your Ethereum account:
    {address}

    {statement}

    URI: {uri}
    Version: {version}
    Chain ID: {chain_id}
    Nonce: {nonce}
    Issued At: {issued_at}
    Expiration Time: {expiration_time}

The statement paragraph and the ``Expiration Time`` line are optional.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime

from watson_auth.services.errors import MalformedChallengeError

GREETING_SUFFIX = " wants you to sign in with your Ethereum account:"

_HEADER_RE = re.compile(
    r"\A(?P<domain>\S+)"
    + re.escape(GREETING_SUFFIX)
    + r"\n(?P<address>0x[0-9a-fA-F]{40})\n\n"
)
_ADDRESS_RE = re.compile(r"\A0x[0-9a-fA-F]{40}\Z")
_RFC3339_RE = re.compile(
    r"\A\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})\Z"
)

# label -> (attribute, value pattern, required)
_FIELDS: dict[str, tuple[str, str, bool]] = {
    "URI": ("uri", r"\S+", True),
    "Version": ("version", r"[0-9]+", True),
    "Chain ID": ("chain_id", r"[0-9]+", True),
    "Nonce": ("nonce", r"[A-Za-z0-9]+", True),
    "Issued At": ("issued_at", r"\S+", True),
    "Expiration Time": ("expiration_time", r"\S+", False),
}
_FIELD_LINE_RE = re.compile(
    r"\A(?P<label>" + "|".join(re.escape(label) for label in _FIELDS) + r"): (?P<value>.*)\Z"
)


@dataclass(frozen=True)
class ChallengeMessage:
    """Field-level view of a sign-in challenge."""

    domain: str
    address: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: datetime
    expiration_time: datetime | None = None
    statement: str | None = None


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC 3339, using ``Z`` for UTC."""
    if value.tzinfo is None:
        raise ValueError("Challenge timestamps must be timezone-aware")
    timespec = "microseconds" if value.microsecond else "seconds"
    rendered = value.isoformat(timespec=timespec)
    if value.utcoffset() == UTC.utcoffset(None):
        rendered = rendered[: -len("+00:00")] + "Z"
    return rendered


def parse_timestamp(field: str, raw: str) -> datetime:
    """Parse an RFC 3339 timestamp or raise :class:`MalformedChallengeError`."""
    if not _RFC3339_RE.match(raw):
        raise MalformedChallengeError(field, "expected RFC 3339 timestamp")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as err:
        raise MalformedChallengeError(field, "expected RFC 3339 timestamp") from err


def build_message(message: ChallengeMessage) -> str:
    """Render ``message`` into the canonical text a wallet signs."""
    if not message.domain or any(ch.isspace() for ch in message.domain):
        raise ValueError("domain must be non-empty and contain no whitespace")
    if not _ADDRESS_RE.match(message.address):
        raise ValueError("address must be 0x followed by 40 hex digits")
    if message.statement is not None and (
        not message.statement
        or "\n" in message.statement
        or _FIELD_LINE_RE.match(message.statement)
    ):
        raise ValueError("statement must be a single non-empty line that is not a field")

    lines = [
        f"{message.domain}{GREETING_SUFFIX}",
        message.address,
        "",
    ]
    if message.statement is not None:
        lines.extend([message.statement, ""])
    lines.extend(
        [
            f"URI: {message.uri}",
            f"Version: {message.version}",
            f"Chain ID: {message.chain_id}",
            f"Nonce: {message.nonce}",
            f"Issued At: {format_timestamp(message.issued_at)}",
        ]
    )
    if message.expiration_time is not None:
        lines.append(f"Expiration Time: {format_timestamp(message.expiration_time)}")
    return "\n".join(lines) + "\n"


def _split_statement(body: str) -> tuple[str | None, str]:
    if _FIELD_LINE_RE.match(body.split("\n", 1)[0]):
        return None, body
    statement, sep, rest = body.partition("\n\n")
    if not sep or not statement or "\n" in statement:
        raise MalformedChallengeError("statement")
    return statement, rest


def parse_message(text: str) -> ChallengeMessage:
    """Parse challenge text produced by :func:`build_message`.

    The greeting and address must be the first two lines. After the optional
    statement every line must be a labelled field; fields may appear in any
    order but each at most once. The statement is a single line, so it cannot
    smuggle in a field line of its own.
    """
    header = _HEADER_RE.match(text)
    if header is None:
        first_line = text.split("\n", 1)[0]
        if not first_line.endswith(GREETING_SUFFIX):
            raise MalformedChallengeError("domain")
        raise MalformedChallengeError("address")

    statement, body = _split_statement(text[header.end():])
    if body.endswith("\n"):
        body = body[:-1]

    raw: dict[str, str] = {}
    for line in body.split("\n"):
        match = _FIELD_LINE_RE.match(line)
        if match is None:
            raise MalformedChallengeError("body", f"unexpected line {line[:40]!r}")
        label = match.group("label")
        if label in raw:
            raise MalformedChallengeError(_FIELDS[label][0], "duplicate field")
        raw[label] = match.group("value")

    values: dict[str, str] = {}
    for label, (attr, pattern, required) in _FIELDS.items():
        value = raw.get(label)
        if value is None:
            if required:
                raise MalformedChallengeError(attr, "missing")
            continue
        if re.fullmatch(pattern, value) is None:
            raise MalformedChallengeError(attr)
        values[attr] = value

    expiration = values.get("expiration_time")
    return ChallengeMessage(
        domain=header.group("domain"),
        address=header.group("address"),
        statement=statement,
        uri=values["uri"],
        version=values["version"],
        chain_id=int(values["chain_id"]),
        nonce=values["nonce"],
        issued_at=parse_timestamp("issued_at", values["issued_at"]),
        expiration_time=(
            parse_timestamp("expiration_time", expiration) if expiration is not None else None
        ),
    )
