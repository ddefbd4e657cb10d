#!/usr/bin/env python3
"""Apply one small win through the balance ledger and verify it lands exactly once."""

from __future__ import annotations

import argparse
import json
import time
import uuid
from decimal import Decimal
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


def _http_json(
    *,
    method: str,
    url: str,
    payload: dict | None = None,
    source_type: str | None = None,
    timeout_seconds: float = 8.0,
) -> dict:
    body = None
    headers = {}
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    if source_type:
        headers["Source-Type"] = source_type

    req = Request(url=url, data=body, headers=headers, method=method)
    with urlopen(req, timeout=timeout_seconds) as resp:
        raw = resp.read().decode("utf-8")
    return json.loads(raw)


def _write_output(path: Path | None, output: dict) -> None:
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(output, indent=2), encoding="utf-8")


def main() -> int:
    parser = argparse.ArgumentParser(description="Idempotent transaction check.")
    parser.add_argument("--base-url", required=True)
    parser.add_argument("--user-id", required=True, type=int)
    parser.add_argument("--amount", default="0.01")
    parser.add_argument("--source-type", default="server")
    parser.add_argument("--timeout-seconds", type=float, default=8.0)
    parser.add_argument("--output-json", type=Path, default=None)
    args = parser.parse_args()

    base_url = args.base_url.rstrip("/")
    amount = Decimal(args.amount)
    if amount <= Decimal("0"):
        raise ValueError("Check amount must be greater than zero.")

    start_ms = int(time.time() * 1000)
    transaction_id = f"check-{start_ms}-{uuid.uuid4().hex[:12]}"
    balance_url = f"{base_url}/user/{args.user_id}/balance"
    transaction_url = f"{base_url}/user/{args.user_id}/transaction"
    payload = {"state": "win", "amount": args.amount, "transactionId": transaction_id}

    try:
        before = _http_json(method="GET", url=balance_url, timeout_seconds=args.timeout_seconds)
        before_balance = Decimal(before["balance"])

        _http_json(
            method="POST",
            url=transaction_url,
            payload=payload,
            source_type=args.source_type,
            timeout_seconds=args.timeout_seconds,
        )

        try:
            _http_json(
                method="POST",
                url=transaction_url,
                payload=payload,
                source_type=args.source_type,
                timeout_seconds=args.timeout_seconds,
            )
        except HTTPError as exc:
            if exc.code != 409:
                raise
        else:
            raise RuntimeError("Replayed transaction id was accepted twice.")

        after = _http_json(method="GET", url=balance_url, timeout_seconds=args.timeout_seconds)
        after_balance = Decimal(after["balance"])

        expected = before_balance + amount
        if after_balance != expected:
            raise RuntimeError(
                f"Post-read balance mismatch: got {after_balance}, expected {expected}"
            )

    except HTTPError as exc:
        detail = f"HTTP {exc.code}"
        _write_output(args.output_json, {"success": False, "error": detail})
        print(detail)
        return 1
    except URLError as exc:
        detail = f"Network error: {exc.reason}"
        _write_output(args.output_json, {"success": False, "error": detail})
        print(detail)
        return 1
    except Exception as exc:  # noqa: BLE001
        _write_output(args.output_json, {"success": False, "error": str(exc)})
        print(str(exc))
        return 1

    output = {
        "success": True,
        "timestamp_ms": start_ms,
        "user_id": args.user_id,
        "amount": args.amount,
        "transaction_id": transaction_id,
        "before_balance": str(before_balance),
        "after_balance": str(after_balance),
    }
    _write_output(args.output_json, output)
    print(json.dumps(output))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
