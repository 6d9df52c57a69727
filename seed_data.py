# Run: python seed_data.py [demo|fake] (clears and reseeds the configured database)
import sys

from school_admin import analytics, crud
from school_admin.config import configure_logging
from school_admin.db import SessionLocal, init_db
from school_admin.formatting import format_currency, format_percentage
from school_admin.seed import clear, seed_demo, seed_fake


NUM_STUDENTS = 500
NUM_EMPLOYEES = 50


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else "demo"
    if mode not in ("demo", "fake"):
        print("Usage: python seed_data.py [demo|fake]")
        sys.exit(1)

    configure_logging()
    init_db()
    db = SessionLocal()
    try:
        clear(db)
        if mode == "demo":
            seed_demo(db)
        else:
            seed_fake(db, NUM_STUDENTS, NUM_EMPLOYEES)
        stats = analytics.build_stats(crud.load_snapshot(db))
    finally:
        db.close()

    payments = stats["payments"]
    print('Seeded database with', stats["students"]["total"], 'students and',
          stats["employees"]["total"], 'employees')
    print('Collected', format_currency(payments["totalPaidAmount"]),
          'outstanding', format_currency(payments["totalUnpaidAmount"]),
          'attendance', format_percentage(stats["overview"]["attendanceRate"]))


if __name__ == '__main__':
    main()
