"""
Recompute every store's rating statistics from its rating rows.
Run this after restoring a backup or editing ratings outside the API.
"""

import sys
from store_ratings.core.logging import setup_logging
from store_ratings.database import SessionLocal
from store_ratings.services.aggregates import reconcile_all


def run_reconcile():
    """Rebuild average_rating/total_ratings for all stores"""

    print("Reconciling store rating statistics...")

    db = SessionLocal()
    try:
        drifted = reconcile_all(db)
        if drifted:
            print(f"✓ Corrected {len(drifted)} store(s): {', '.join(str(i) for i in drifted)}")
        else:
            print("✓ All store aggregates were already consistent")
        print("\nReconciliation completed successfully!")
    except Exception as e:
        print(f"✗ Error running reconciliation: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    run_reconcile()
