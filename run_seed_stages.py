#!/usr/bin/env python3
"""
Standalone script to seed the manufacturing stage catalog.
Adds the default stages that are missing from the database; existing
stages are left untouched.

Usage:
    python run_seed_stages.py
"""

import sys

from shopplan import create_app
from shopplan.seed import seed_default_stages


def main():
    """Main function to run stage seeding."""
    print("Starting stage catalog seeding")
    print("=" * 50)

    app = create_app({"SEED_STAGES_ON_STARTUP": False})

    with app.app_context():
        try:
            result = seed_default_stages()

            print("\n" + "=" * 50)
            print("Stage catalog seeding completed successfully")
            print(f"New stages added: {result['created']}")
            print(f"Stages already present: {result['existing']}")

            return 0

        except Exception as e:
            print(f"\nStage catalog seeding failed: {e}")
            return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
