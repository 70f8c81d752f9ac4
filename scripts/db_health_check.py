#!/usr/bin/env python
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, inspect, text

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from workhub.settings import get_settings

EXPECTED_HEAD = "0001_initial"
REQUIRED_TABLES = (
    "users",
    "employees",
    "departments",
    "attendance",
    "tasks",
    "objection_requests",
    "requests",
    "notices",
    "audit_logs",
)


def run() -> dict:
    database_url = get_settings().database_url
    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database": engine.url.render_as_string(hide_password=True),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    tables = set(inspect(engine).get_table_names())
    missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
    add("required_tables", "fail" if missing_tables else "ok", {"missing": missing_tables})

    with engine.connect() as conn:
        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        if "attendance" in tables:
            duplicate_days = conn.execute(
                text(
                    """
                    select employee_id, work_date, count(*)
                    from attendance
                    group by employee_id, work_date
                    having count(*) > 1
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "duplicate_attendance_per_day",
                "fail" if duplicate_days else "ok",
                {"rows": [[row[0], str(row[1]), row[2]] for row in duplicate_days]},
            )

            open_past_days = conn.execute(
                text(
                    """
                    select id
                    from attendance
                    where check_out_time is null
                      and check_in_time is not null
                      and work_date < :today
                    limit 20
                    """
                ),
                {"today": datetime.now(timezone.utc).date()},
            ).fetchall()
            add(
                "attendance_missing_check_out",
                "warn" if open_past_days else "ok",
                {"sample_ids": [row[0] for row in open_past_days]},
            )

        if "employees" in tables and "users" in tables:
            orphan_employees = conn.execute(
                text(
                    """
                    select e.id
                    from employees e
                    left join users u on u.id = e.user_id
                    where u.id is null
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "employee_orphan_user",
                "fail" if orphan_employees else "ok",
                {"sample_ids": [row[0] for row in orphan_employees]},
            )

            admin_count = conn.execute(
                text("select count(*) from users where role = 'ADMIN' and is_active = true")
            ).scalar()
            add("active_admin_present", "ok" if admin_count else "warn", {"count": int(admin_count or 0)})

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
