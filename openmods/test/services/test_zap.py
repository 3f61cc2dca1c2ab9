from __future__ import annotations

from pathlib import Path

import pytest

from openmods.core.files import write_json
from openmods.core.result import Err, Ok
from openmods.nostr.errors import AmountOutOfRange, MissingCoordinate
from openmods.nostr.event import (
    KIND_PROJECT,
    KIND_RELEASE,
    KIND_ZAP_RECEIPT,
    KIND_ZAP_REQUEST,
    SignedEvent,
    UnsignedEvent,
    sign_event,
)
from openmods.services.lnurl import DEFAULT_METADATA, PaymentTarget
from openmods.services.zap import (
    build_payment_receipt,
    build_payment_request,
    coordinate_of,
    is_simulated_invoice,
    load_release_event,
    metadata_warnings,
    simulated_invoice,
)
from openmods.test._factories import OTHER_SECRET, PUBKEY, SECRET
from openmods.nostr.keys import public_key_of

ZAPPER = public_key_of(OTHER_SECRET)
D_TAG = "skyrim-se.better-lanterns@1.2.0"


def _release(tags: tuple[tuple[str, ...], ...] = (("d", D_TAG),)) -> SignedEvent:
    return sign_event(
        UnsignedEvent(kind=KIND_RELEASE, created_at=1, pubkey=PUBKEY, tags=tags, content="{}"),
        SECRET,
    )


def _target(**overrides: object) -> PaymentTarget:
    values: dict[str, object] = {
        "original": "lumen@pay.example",
        "resolved_url": "https://pay.example/.well-known/lnurlp/lumen",
        "metadata": f'[["text/plain","Zap {D_TAG}"]]',
        "callback": "https://pay.example/cb",
    }
    values.update(overrides)
    return PaymentTarget(**values)  # type: ignore[arg-type]


class TestCoordinate:
    def test_coordinate(self) -> None:
        assert coordinate_of(_release()) == Ok(f"{KIND_RELEASE}:{PUBKEY}:{D_TAG}")

    def test_missing_d_tag(self) -> None:
        result = coordinate_of(_release(tags=()))
        assert isinstance(result, Err)
        assert isinstance(result.error, MissingCoordinate)


class TestPaymentRequest:
    def test_tags(self) -> None:
        release = _release()
        target = _target()
        result = build_payment_request(
            release, target, 21_000, ["wss://a", "wss://b"], "great mod", ZAPPER, 1_700_000_000
        )
        assert isinstance(result, Ok)
        request = result.value
        assert request.kind == KIND_ZAP_REQUEST
        assert request.pubkey == ZAPPER
        assert request.content == "great mod"
        assert [list(t) for t in request.tags] == [
            ["relays", "wss://a", "wss://b"],
            ["amount", "21000"],
            ["lnurl", target.resolved_url],
            ["description", target.description_hash],
            ["p", PUBKEY],
            ["e", release.id],
            ["a", f"{KIND_RELEASE}:{PUBKEY}:{D_TAG}"],
            ["zap-name", "great mod"],
        ]

    def test_no_zap_name_without_message(self) -> None:
        result = build_payment_request(_release(), _target(), 1000, [], "", ZAPPER, 1)
        assert isinstance(result, Ok)
        assert result.value.first_tag("zap-name") is None
        assert result.value.first_tag("relays") == ("relays",)

    def test_missing_coordinate(self) -> None:
        result = build_payment_request(_release(tags=()), _target(), 1000, [], "", ZAPPER, 1)
        assert isinstance(result, Err)
        assert isinstance(result.error, MissingCoordinate)

    @pytest.mark.parametrize("amount", [10_000, 50_000, 100_000])
    def test_bounds_inclusive(self, amount: int) -> None:
        target = _target(min_sendable=10_000, max_sendable=100_000)
        assert isinstance(build_payment_request(_release(), target, amount, [], "", ZAPPER, 1), Ok)

    @pytest.mark.parametrize("amount", [9_999, 100_001])
    def test_one_msat_outside_rejected(self, amount: int) -> None:
        target = _target(min_sendable=10_000, max_sendable=100_000)
        result = build_payment_request(_release(), target, amount, [], "", ZAPPER, 1)
        assert isinstance(result, Err)
        assert isinstance(result.error, AmountOutOfRange)
        assert result.error.amount_msat == amount

    def test_non_positive_amount(self) -> None:
        result = build_payment_request(_release(), _target(), 0, [], "", ZAPPER, 1)
        assert isinstance(result, Err)
        assert result.error.message == "Amount must be a positive number of millisatoshis"


class TestPaymentReceipt:
    def _request(self, signed: bool) -> UnsignedEvent:
        result = build_payment_request(_release(), _target(), 21_000, ["wss://a"], "", ZAPPER, 1)
        assert isinstance(result, Ok)
        return sign_event(result.value, OTHER_SECRET) if signed else result.value

    def test_signed_request(self) -> None:
        request = self._request(signed=True)
        target = _target()
        result = build_payment_receipt(request, _release(), target, PUBKEY, 21_000, 2, invoice="lnbc1real")
        assert isinstance(result, Ok)
        receipt = result.value
        assert receipt.kind == KIND_ZAP_RECEIPT
        assert receipt.pubkey == PUBKEY
        assert receipt.content == "Zap receipt for 21 sats (simulated)"
        assert isinstance(request, SignedEvent)
        assert [list(t) for t in receipt.tags] == [
            ["p", ZAPPER],
            ["a", f"{KIND_RELEASE}:{PUBKEY}:{D_TAG}"],
            ["description", target.description_hash],
            ["callback", "https://pay.example/cb"],
            ["lnurl", target.resolved_url],
            ["bolt11", "lnbc1real"],
            ["e", request.id],
        ]

    def test_unsigned_request_has_no_event_ref(self) -> None:
        result = build_payment_receipt(self._request(signed=False), _release(), _target(), PUBKEY, 21_000, 2)
        assert isinstance(result, Ok)
        assert result.value.first_tag("e") is None
        bolt11 = result.value.tag_value("bolt11")
        assert bolt11 is not None and is_simulated_invoice(bolt11)

    def test_no_callback_tag_without_callback(self) -> None:
        result = build_payment_receipt(
            self._request(signed=False), _release(), _target(callback=None), PUBKEY, 21_000, 2
        )
        assert isinstance(result, Ok)
        assert result.value.first_tag("callback") is None


class TestSimulatedInvoice:
    def test_shape(self) -> None:
        assert simulated_invoice(21, "https://pay.example/cb") == "lnbc000000210n1ppayexample00000021"

    def test_default_host(self) -> None:
        assert simulated_invoice(5, None) == "lnbc000000050n1popenmods00000005"

    def test_recognised(self) -> None:
        assert is_simulated_invoice(simulated_invoice(123_456_789, "https://pay.example"))
        assert not is_simulated_invoice("lnbc10n1pvjluezpp5qqqsyqcyq5rqwzqfqqqsyqcyq5rqwz")


class TestMetadataWarnings:
    def test_clean(self) -> None:
        assert metadata_warnings(_target(allows_nostr=True), _release()) == []

    def test_release_not_referenced(self) -> None:
        warnings = metadata_warnings(_target(metadata=DEFAULT_METADATA), _release())
        assert len(warnings) == 1
        assert "does not reference the release" in warnings[0]

    def test_unparsable(self) -> None:
        warnings = metadata_warnings(_target(metadata="not json"), _release())
        assert "Unable to parse LNURL metadata" in warnings[0]

    def test_nostr_disabled(self) -> None:
        warnings = metadata_warnings(_target(allows_nostr=False), _release())
        assert any("nostr support disabled" in w for w in warnings)


class TestLoadReleaseEvent:
    def test_signed(self, tmp_path: Path) -> None:
        release = _release()
        path = tmp_path / "event.json"
        write_json(path, release.to_dict())
        assert load_release_event(path) == Ok(release)

    def test_unsigned_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        write_json(path, _release().unsigned().to_dict())
        result = load_release_event(path)
        assert isinstance(result, Err)
        assert "unsigned" in result.error.message

    def test_wrong_kind(self, tmp_path: Path) -> None:
        event = sign_event(UnsignedEvent(kind=KIND_PROJECT, created_at=1, pubkey=PUBKEY, tags=(), content=""), SECRET)
        path = tmp_path / "event.json"
        write_json(path, event.to_dict())
        assert isinstance(load_release_event(path), Err)
