"""
Issue a bearer token for local development.

Usage:
    cd backend
    python -m scripts.issue_token dev_admin --role ADMIN
    python -m scripts.issue_token agent_kim --role AGENT --name "Kim" --minutes 60

Requires: AUTH_PROVIDER=local and LOCAL_JWT_SECRET in .env
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure backend root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.config import get_settings
from app.core.security import create_access_token
from app.models.enums import PrincipalRole


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint a local JWT for a principal.")
    parser.add_argument("principal_id", help="Subject (sub claim)")
    parser.add_argument(
        "--role",
        choices=[role.value for role in PrincipalRole],
        default=PrincipalRole.AGENT.value,
    )
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime override")
    args = parser.parse_args()

    settings = get_settings()
    if not settings.LOCAL_JWT_SECRET:
        parser.error("LOCAL_JWT_SECRET is not set")

    print(
        create_access_token(
            args.principal_id,
            args.role,
            settings,
            display_name=args.name,
            expires_minutes=args.minutes,
        )
    )


if __name__ == "__main__":
    main()
