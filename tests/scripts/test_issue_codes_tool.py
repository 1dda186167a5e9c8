from __future__ import annotations

import csv
from datetime import datetime, timezone

import pytest

from petal_economy.economy.redemption.types import CodeType, IssuedCode
from scripts.issue_codes_tool import _parse_args, _validate_args, _write_output


def test_order_batch_arguments_are_valid() -> None:
    args = _parse_args(["--code-type", "ORDER", "--order-amount", "2500", "--count", "3", "--created-by", "shop"])

    _validate_args(args)
    assert args.count == 3


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["--code-type", "ORDER", "--created-by", "shop"], "--order-amount is required"),
        (["--code-type", "ORDER", "--order-amount", "abc", "--created-by", "shop"], "must be a number"),
        (["--code-type", "CUSTOM", "--created-by", "shop"], "--petals is required"),
        (["--code-type", "SOCIAL", "--petals", "3", "--created-by", "smm"], "SOCIAL codes"),
        (["--code-type", "SOCIAL", "--count", "0", "--created-by", "smm"], "--count"),
        (["--code-type", "SOCIAL", "--expires-in-days", "0", "--created-by", "smm"], "--expires-in-days"),
        (["--code-type", "SOCIAL", "--spin-credit", "1", "--created-by", "smm"], "CUSTOM codes only"),
        (
            ["--code-type", "ORDER", "--order-amount", "2500", "--bound-user-id", "42", "--created-by", "shop"],
            "CUSTOM codes only",
        ),
    ],
)
def test_invalid_arguments_are_rejected(argv: list[str], message: str) -> None:
    args = _parse_args(argv)

    with pytest.raises(ValueError, match=message):
        _validate_args(args)


def test_write_output_csv(tmp_path) -> None:
    issued = [
        IssuedCode(
            code="SCABCDEFGH12",
            code_type=CodeType.SOCIAL,
            petals_delta=5,
            spin_credit=0,
            expires_at=datetime(2026, 3, 24, tzinfo=timezone.utc),
            created_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
        )
    ]
    output = tmp_path / "reports" / "codes.csv"

    _write_output(output, issued)

    with output.open(encoding="utf-8", newline="") as file:
        rows = list(csv.DictReader(file))
    assert rows == [
        {
            "code": "SCABCDEFGH12",
            "code_type": "SOCIAL",
            "petals_delta": "5",
            "spin_credit": "0",
            "expires_at": "2026-03-24T00:00:00+00:00",
            "bound_user_id": "",
        }
    ]


def test_custom_batch_accepts_spin_credit_and_bound_user() -> None:
    args = _parse_args(
        [
            "--code-type",
            "CUSTOM",
            "--petals",
            "10",
            "--spin-credit",
            "1",
            "--bound-user-id",
            "42",
            "--created-by",
            "admin",
        ]
    )

    _validate_args(args)
    assert args.spin_credit == 1
    assert args.bound_user_id == "42"
