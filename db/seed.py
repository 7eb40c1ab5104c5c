# Insert a sample global geofence zone (HQ)
from sqlmodel import Session, SQLModel, select

import models  # noqa: F401
from db.session import engine
from models.geofence_zone import GeofenceZone

SEED_ZONES = [
    {
        "name": "HQ",
        "latitude": 12.9716,
        "longitude": 77.5946,
        "radius_meters": 100.0,  # 100 m radius
        "description": "Head office",
    },
]


def seed_zones():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        for zone_data in SEED_ZONES:
            # Check if the zone already exists to avoid duplicates
            existing = session.exec(
                select(GeofenceZone)
                .where(GeofenceZone.name == zone_data["name"])
                .where(GeofenceZone.company_id.is_(None))
            ).first()
            if existing:
                print(f"{zone_data['name']} zone already exists")
                continue

            session.add(GeofenceZone(**zone_data))
            print(f"Added {zone_data['name']} zone")

        session.commit()


if __name__ == "__main__":
    seed_zones()
