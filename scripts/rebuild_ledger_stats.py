"""
Rebuild the derived ledger tables (creator_stats, referral_stats) from
courses and purchases.

Idempotent: overwrites the derived rows, can be run any number of times.

Usage: python scripts/rebuild_ledger_stats.py [--creators-only]
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal
from app.services import creator_stats, referrals


def show_top(db, limit=10):
    print(f"\n=== TOP {limit} CREATORS ===")
    rows, total = creator_stats.list_leaderboard(db, limit, 0)
    for rank, row in enumerate(rows, start=1):
        print(
            f"  #{rank} user={row.user_id} points={row.points} "
            f"courses={row.courses_count} students={row.students_count} "
            f"earnings={row.total_earnings_usd}"
        )
    print(f"  ({total} creators total)")


def main():
    creators_only = "--creators-only" in sys.argv[1:]
    db = SessionLocal()
    try:
        count = creator_stats.refresh_all(db)
        print(f"[OK] creator_stats rebuilt for {count} creators")
        if not creators_only:
            count = referrals.refresh_all(db)
            print(f"[OK] referral_stats rebuilt for {count} referrers")
        show_top(db)
    except Exception as e:
        db.rollback()
        print(f"\n[ERROR] Rollback. {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
