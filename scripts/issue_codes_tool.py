from __future__ import annotations

import argparse
import asyncio
import csv
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from pathlib import Path

from petal_economy.core.clock import utc_now
from petal_economy.core.config import get_settings
from petal_economy.core.logging import configure_logging
from petal_economy.db.session import SessionLocal
from petal_economy.economy.config import load_loyalty_config
from petal_economy.economy.redemption.issuance import SOCIAL_ACTIVITY_TYPES, IssuanceService
from petal_economy.economy.redemption.types import CodeType, IssuedCode

DEFAULT_OUTPUT_CSV = Path("reports/issued_codes.csv")
MAX_BATCH_SIZE = 500


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Redemption code issuance tool")
    parser.add_argument("--code-type", choices=("ORDER", "SOCIAL", "CUSTOM"), required=True)
    parser.add_argument("--order-amount", help="ORDER: order total used to pick the petal band")
    parser.add_argument("--activity-type", choices=SOCIAL_ACTIVITY_TYPES, default="story")
    parser.add_argument("--petals", type=int, help="CUSTOM: petals granted on activation")
    parser.add_argument("--spin-credit", type=int, choices=(0, 1), default=0)
    parser.add_argument("--expires-in-days", type=int, default=14)
    parser.add_argument("--bound-user-id")
    parser.add_argument("--count", type=int, default=1)
    parser.add_argument("--created-by", required=True)
    parser.add_argument("--output-csv", type=Path)
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if not 1 <= args.count <= MAX_BATCH_SIZE:
        raise ValueError(f"--count must be in range 1..{MAX_BATCH_SIZE}")
    if args.expires_in_days <= 0:
        raise ValueError("--expires-in-days must be positive")
    if args.code_type != "CUSTOM" and (args.spin_credit or args.bound_user_id is not None):
        raise ValueError("--spin-credit and --bound-user-id apply to CUSTOM codes only")

    if args.code_type == "ORDER":
        if args.order_amount is None:
            raise ValueError("--order-amount is required for ORDER codes")
        try:
            amount = Decimal(args.order_amount)
        except InvalidOperation as exc:
            raise ValueError("--order-amount must be a number") from exc
        if amount <= 0:
            raise ValueError("--order-amount must be positive")
    elif args.code_type == "CUSTOM":
        if args.petals is None:
            raise ValueError("--petals is required for CUSTOM codes")
        if args.petals < 0:
            raise ValueError("--petals must not be negative")
    elif args.petals is not None or args.order_amount is not None:
        raise ValueError("SOCIAL codes take neither --petals nor --order-amount")


async def _issue_batch(args: argparse.Namespace) -> list[IssuedCode]:
    now_utc = utc_now()
    issued: list[IssuedCode] = []

    async with SessionLocal.begin() as session:
        config = await load_loyalty_config(session)
        for _ in range(args.count):
            if args.code_type == "ORDER":
                item = await IssuanceService.issue_order_code(
                    session,
                    order_amount=Decimal(args.order_amount),
                    created_by=args.created_by,
                    now_utc=now_utc,
                    config=config,
                    expires_in_days=args.expires_in_days,
                )
                if item is None:
                    raise ValueError(f"order amount {args.order_amount} is below the lowest band")
            elif args.code_type == "SOCIAL":
                item = await IssuanceService.issue_social_code(
                    session,
                    created_by=args.created_by,
                    now_utc=now_utc,
                    activity_type=args.activity_type,
                    config=config,
                )
            else:
                item = await IssuanceService.issue_code(
                    session,
                    code_type=CodeType.ORDER,
                    petals_delta=args.petals,
                    spin_credit=args.spin_credit,
                    created_by=args.created_by,
                    now_utc=now_utc,
                    expires_in_days=args.expires_in_days,
                    labels={"source": "issue_codes_tool"},
                    bound_user_id=args.bound_user_id,
                )
            issued.append(item)
    return issued


def _write_output(path: Path, issued: list[IssuedCode]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(["code", "code_type", "petals_delta", "spin_credit", "expires_at", "bound_user_id"])
        for item in issued:
            writer.writerow(
                [
                    item.code,
                    item.code_type.value,
                    item.petals_delta,
                    item.spin_credit,
                    item.expires_at.isoformat(),
                    item.bound_user_id or "",
                ]
            )


async def _run(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    _validate_args(args)
    configure_logging(get_settings().log_level)

    issued = await _issue_batch(args)
    output_csv = args.output_csv or DEFAULT_OUTPUT_CSV
    _write_output(output_csv, issued)
    print(f"issued={len(issued)} output={output_csv}")  # noqa: T201
    return 0


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
