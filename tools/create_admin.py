#!/usr/bin/env python3
"""
CLI utility to provision an administrator account.

Examples:
    python tools/create_admin.py --email ops@example.com --name "Ops" --password s3cret!
    python tools/create_admin.py --email editor@example.com --name "Ed" --password s3cret! --role editor
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# The tool is meant to be run from repository root. Adjust sys.path for policy_admin/*.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pydantic import ValidationError as SchemaValidationError  # noqa: E402

from policy_admin.core.errors import AppError  # noqa: E402
from policy_admin.db import SessionLocal, init_db  # noqa: E402
from policy_admin.models.enums import AdminRole  # noqa: E402
from policy_admin.schemas.auth import AdminCreate, AdminRead  # noqa: E402
from policy_admin.services.auth_service import AuthService  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create a Policy Admin administrator")
    p.add_argument("--email", required=True, help="Login email (stored lower-cased)")
    p.add_argument("--name", required=True, help="Display name")
    p.add_argument("--password", required=True, help="Initial password (min 6 characters)")
    p.add_argument(
        "--role",
        choices=[r.value for r in AdminRole],
        default=AdminRole.EDITOR.value,
        help="Administrator role (default: editor)",
    )
    return p.parse_args(argv)


async def create(data: AdminCreate) -> AdminRead:
    await init_db()
    async with SessionLocal() as session:
        admin = await AuthService.create_admin(session, data)
        await session.commit()
        return admin


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        data = AdminCreate(
            name=args.name,
            email=args.email,
            password=args.password,
            role=AdminRole(args.role),
        )
        admin = asyncio.run(create(data))
    except SchemaValidationError as e:
        for err in e.errors():
            print(f"[error] {err['msg']}", file=sys.stderr)
        return 2
    except AppError as e:
        print(f"[error] {e.message}", file=sys.stderr)
        return 1

    print(f"[ok] created {admin.role.value} {admin.email} (id={admin.id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
