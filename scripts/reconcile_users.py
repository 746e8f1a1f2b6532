"""Remove identity accounts without a portal profile and profiles without an account.

Usage:
    uv run python -m scripts.reconcile_users [--apply]
Without --apply only the report is printed (dry run).
All imports use app.*.
"""

import asyncio
import sys

from app.application.dtos.session import Session
from app.application.services.identity_functions import IdentityFunctions
from app.application.services.user_service import UserService
from app.core.config import get_settings
from app.infrastructure.firebase.client import close_firebase, get_firestore_client, init_firebase
from app.infrastructure.firebase.identity import FirebaseIdentityClient
from app.infrastructure.firebase.repositories import FirestoreUserRepository
from app.shared.telemetry.logging import setup_logging


async def main() -> None:
    """Run one reconciliation pass and print the report."""
    setup_logging()
    dry_run = "--apply" not in sys.argv
    settings = get_settings()
    if not init_firebase():
        print("Firebase credentials not configured", file=sys.stderr)
        sys.exit(1)
    client = get_firestore_client()
    identity = FirebaseIdentityClient(client.project_id, client.credentials)
    functions = IdentityFunctions(
        identity, email_domain=settings.email_domain, admin_emails=settings.admin_email_set
    )
    service = UserService(
        FirestoreUserRepository(client),
        functions,
        identity,
        default_password=settings.default_password.get_secret_value(),
    )
    try:
        report = await service.reconcile(
            Session(uid="reconcile-script", is_admin=True), dry_run=dry_run
        )
    finally:
        await identity.aclose()
        await close_firebase()

    mode = "Dry run" if dry_run else "Applied"
    print(f"{mode}: {len(report.orphan_accounts)} orphan accounts, "
          f"{len(report.orphan_documents)} orphan profiles")
    for uid in report.orphan_accounts:
        print(f"  account  {uid}")
    for doc_id in report.orphan_documents:
        print(f"  profile  {doc_id}")
    if report.failures:
        print(f"Failed: {', '.join(report.failures)}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    asyncio.run(main())
