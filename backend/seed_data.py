"""Seed database with demo crews and complaint types."""
from crew_dispatch.database import SessionLocal
from crew_dispatch.models import ComplaintType, Crew

COMPLAINT_TYPES = [
    "Alumbrado público",
    "Poda",
    "Recolección de residuos",
    "Bacheo",
    "Desagües",
]

CREWS = [
    {
        'name': 'Cuadrilla Alumbrado Norte',
        'phone': '3491456789',
        'simultaneous_limit': 3,
        'types': ['Alumbrado público'],
    },
    {
        'name': 'Cuadrilla Poda',
        'phone': '3491456790',
        'simultaneous_limit': 2,
        'types': ['Poda'],
    },
    {
        'name': 'Cuadrilla Vial',
        'phone': '3491456791',
        'simultaneous_limit': 4,
        'types': ['Bacheo', 'Desagües'],
    },
    {
        'name': 'Cuadrilla Higiene Urbana',
        'phone': '3491456792',
        'simultaneous_limit': 5,
        'types': ['Recolección de residuos'],
    },
]


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        types_by_name = {}
        for name in COMPLAINT_TYPES:
            complaint_type = db.query(ComplaintType).filter(ComplaintType.name == name).first()
            if not complaint_type:
                complaint_type = ComplaintType(name=name)
                db.add(complaint_type)
            types_by_name[name] = complaint_type
        db.flush()

        for crew_data in CREWS:
            if db.query(Crew).filter(Crew.name == crew_data['name']).first():
                continue
            db.add(
                Crew(
                    name=crew_data['name'],
                    phone=crew_data['phone'],
                    simultaneous_limit=crew_data['simultaneous_limit'],
                    is_available=True,
                    assigned_complaint_ids=[],
                    complaint_types=[types_by_name[name] for name in crew_data['types']],
                )
            )

        db.commit()
        print(f"✅ Seeded {len(COMPLAINT_TYPES)} complaint types and {len(CREWS)} crews")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise

    finally:
        db.close()


if __name__ == "__main__":
    seed()
