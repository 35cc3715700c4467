"""
Seed reference data (initial admin, default leave types) and open balances for given year(s).
Existing rows are left unchanged except that renewal refreshes the allocation. Run with .env loaded.

Usage:
  python scripts/seed.py              # reference data + balances for the current year
  python scripts/seed.py 2026 2027   # reference data + balances for 2026 and 2027
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from leaveflow.core.config import settings
from leaveflow.db.init_db import init_db
from leaveflow.db.session import SessionLocal
from leaveflow.models.user import User
from leaveflow.services.balance_service import renew_balances


def main():
    years = [date.today().year]
    if len(sys.argv) > 1:
        years = [int(y) for y in sys.argv[1:]]

    db = SessionLocal()
    try:
        init_db(db)
        admin = db.query(User).filter(User.employee_id == settings.INITIAL_ADMIN_EMPLOYEE_ID).first()
        actor_id = admin.id if admin else None
        for year in sorted(years):
            result = renew_balances(db, year, actor_id)
            print(f"Balances for {year}: users={result['users_renewed']}, created={result['balances_created']}, rollover_days={result['rollover_days']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
