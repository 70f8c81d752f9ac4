#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from workhub.db import SessionLocal
from workhub.services.users import ensure_admin_user


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the initial WorkHub administrator account.")
    parser.add_argument("--employee-no", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Administrator")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    db = SessionLocal()
    try:
        user = ensure_admin_user(
            db,
            employee_no=args.employee_no,
            password=args.password,
            name=args.name,
        )
        print(json.dumps({"user_id": user.id, "employee_no": user.employee_no, "role": user.role.value}))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
