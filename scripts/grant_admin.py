"""Grant (or revoke) the ``admin`` custom claim on an identity account.

Usage:
    uv run python -m scripts.grant_admin <username-or-email> [--revoke]
The account must sign in again before the new claim shows up in its ID token.
All imports use app.*.
"""

import asyncio
import sys

from app.core.config import get_settings
from app.domain.value_objects import login_email
from app.infrastructure.firebase.client import close_firebase, get_firestore_client, init_firebase
from app.infrastructure.firebase.identity import FirebaseIdentityClient


async def main() -> None:
    """Set or clear the admin claim for the account."""
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    if not args:
        print(
            "Usage: uv run python -m scripts.grant_admin <username-or-email> [--revoke]",
            file=sys.stderr,
        )
        sys.exit(1)
    revoke = "--revoke" in sys.argv
    settings = get_settings()
    email = login_email(args[0], settings.email_domain).lower()

    if not init_firebase():
        print("Firebase credentials not configured", file=sys.stderr)
        sys.exit(1)
    client = get_firestore_client()
    identity = FirebaseIdentityClient(client.project_id, client.credentials)
    try:
        account = None
        async for a in identity.list_accounts():
            if a.email and a.email.lower() == email:
                account = a
                break
        if account is None:
            print(f"Account not found: {email}", file=sys.stderr)
            sys.exit(1)
        claims = dict(account.custom_claims)
        if revoke:
            claims.pop("admin", None)
        else:
            claims["admin"] = True
        await identity.set_custom_claims(account.uid, claims)
        print(f"{'Revoked' if revoke else 'Granted'} admin for {email} ({account.uid})")
    finally:
        await identity.aclose()
        await close_firebase()


if __name__ == "__main__":
    asyncio.run(main())
