"""
Create the attendance indexes on an existing PostgreSQL database.

create_all() only builds indexes for tables it creates, so databases that
predate the open-record and single-primary constraints need this once.
"""

import os

import psycopg2
from dotenv import load_dotenv

load_dotenv()

index_commands = [
    "CREATE INDEX IF NOT EXISTS ix_attendance_record_employee_id ON attendance_record (employee_id);",
    "CREATE INDEX IF NOT EXISTS ix_attendance_record_employee_id_check_in ON attendance_record (employee_id, check_in);",
    "CREATE INDEX IF NOT EXISTS ix_attendance_record_check_in_zone_id ON attendance_record (check_in_zone_id);",
    "CREATE INDEX IF NOT EXISTS ix_attendance_record_check_out_zone_id ON attendance_record (check_out_zone_id);",
    # One open record per employee
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_attendance_record_open ON attendance_record (employee_id) WHERE check_out IS NULL;",
    "CREATE INDEX IF NOT EXISTS ix_geofence_zone_company_id ON geofence_zone (company_id);",
    "CREATE INDEX IF NOT EXISTS ix_geofence_zone_is_active ON geofence_zone (is_active);",
    "CREATE INDEX IF NOT EXISTS ix_employee_geofence_assignment_employee_id ON employee_geofence_assignment (employee_id);",
    # One primary zone per employee
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_employee_geofence_assignment_primary ON employee_geofence_assignment (employee_id) WHERE is_primary;",
]


def create_indexes():
    conn = psycopg2.connect(
        dbname=os.getenv("DB_NAME"),
        user=os.getenv("DB_USER"),
        password=os.getenv("DB_PASSWORD"),
        host=os.getenv("DB_HOST"),
        port=os.getenv("DB_PORT", "5432"),
    )
    try:
        with conn.cursor() as cur:
            for cmd in index_commands:
                print(f"Executing: {cmd}")
                cur.execute(cmd)
        conn.commit()
    finally:
        conn.close()

    print("Indexes created successfully!")


if __name__ == "__main__":
    create_indexes()
