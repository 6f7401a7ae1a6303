#!/usr/bin/env python
"""Provision an organization and its first admin.

Seeds the built-in capability catalog, creates the organization with its
default security policy and capability rows, and grants the admin user an
active admin membership. The user is created when the email is unknown.

Usage:
    python backend/scripts/provision_org.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    ORG_NAME: Display name of the organization (required)
    ORG_SLUG: URL slug of the organization (required)
    ORG_REQUIRE_2FA: "true" to require an enrolled second factor
    ADMIN_EMAIL: Email for admin user (default: admin@example.com)
    ADMIN_NAME: Display name for admin user (default: System Administrator)
"""

import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from sqlalchemy.exc import SQLAlchemyError

from orggate.capabilities.registry import provision_organization, seed_capability_catalog
from orggate.database import get_db_session
from orggate.models.membership import Membership
from orggate.models.user import User
from orggate.tenancy import directory


def main():
    """Provision the organization and its admin."""
    org_name = os.getenv("ORG_NAME")
    org_slug = os.getenv("ORG_SLUG")
    if not org_name or not org_slug:
        print("ERROR: ORG_NAME and ORG_SLUG environment variables are required")
        print("Example: ORG_NAME='Acme GmbH' ORG_SLUG=acme python provision_org.py")
        sys.exit(1)

    require_2fa = os.getenv("ORG_REQUIRE_2FA", "false").lower() == "true"
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com").lower()
    admin_name = os.getenv("ADMIN_NAME", "System Administrator")

    try:
        with get_db_session() as session:
            if directory.get_org_by_slug(session, org_slug) is not None:
                print(f"ERROR: Organization with slug {org_slug} already exists")
                sys.exit(1)

            created = seed_capability_catalog(session)
            org = provision_organization(session, org_name, org_slug, require_2fa=require_2fa)

            admin = session.query(User).filter(User.email == admin_email).first()
            if admin is None:
                admin = User(email=admin_email, name=admin_name)
                session.add(admin)
                session.flush()

            session.add(Membership(user_id=admin.id, organization_id=org.id, role="admin"))
            session.flush()

            print("SUCCESS: Organization provisioned")
            print(f"  Org ID:       {org.id}")
            print(f"  Slug:         {org.slug}")
            print(f"  Require 2FA:  {org.require_2fa}")
            print(f"  Admin:        {admin.email} ({admin.id})")
            print(f"  Catalog:      {created} capabilities added")
    except (SQLAlchemyError, ValueError) as e:
        print(f"ERROR: Failed to provision organization: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
