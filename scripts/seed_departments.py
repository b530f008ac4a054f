import asyncio
import json
import os
import sys
from datetime import timedelta

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from crewdesk.core.clock import now_local
from crewdesk.core.db import SessionLocal, init_models
from crewdesk.modules.departments.models import DepartmentCategory, Department
from crewdesk.modules.departments.repository import DepartmentRepository, AppointmentTypeRepository
from crewdesk.modules.schedules.repository import DayScheduleRepository

SCHEDULE_DAYS = 14

async def create_default_schedules(db, department_id):
    """
    Opens the department on weekdays for the next two weeks, using the default hours.
    """
    print(f"    - Creating default schedules for department {department_id}...")
    repo = DayScheduleRepository(db)
    today = now_local().date()
    days = [today + timedelta(days=i) for i in range(SCHEDULE_DAYS)]
    days = [d for d in days if d.weekday() < 5]  # Monday to Friday
    taken = set(await repo.existing_dates(department_id, days))
    for day in days:
        if day in taken:
            continue
        await repo.create(department_id=department_id, date=day, slot_capacity=1)
    print(f"      ...{len(days) - len(taken)} day(s) scheduled.")

async def main():
    """
    Load department categories, departments and appointment types from departments.json.
    """
    print("Starting department seed...")
    await init_models()

    json_file_path = os.path.join(os.path.dirname(__file__), 'departments.json')
    with open(json_file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    async with SessionLocal() as db:
        departments = DepartmentRepository(db)
        types = AppointmentTypeRepository(db)
        for cat_data in data:
            print(f"Processing category: {cat_data['category']}")

            # --- Find or Create Category ---
            category = await departments.get_category_by_name(cat_data['category'])
            if not category:
                category = DepartmentCategory(name=cat_data['category'])
                db.add(category)
                await db.flush()
                print(f"  - Created category with ID: {category.id}")

            for dept_data in cat_data.get('departments', []):
                # --- Find or Create Department ---
                department = await departments.get_by_name(dept_data['name'])
                if department:
                    print(f"  - Department '{dept_data['name']}' already exists. Skipping.")
                    continue

                print(f"  - Creating department: {dept_data['name']}")
                department = Department(name=dept_data['name'], category_id=category.id)
                db.add(department)
                await db.flush()

                for type_name in dept_data.get('appointment_types', []):
                    await types.create(department_id=department.id, name=type_name)
                print(f"    ...created {len(dept_data.get('appointment_types', []))} appointment type(s)")

                if dept_data.get('open_weekdays', True):
                    await create_default_schedules(db, department.id)

        print("\nCommitting all changes to the database...")
        await db.commit()
        print("Seed complete!")

if __name__ == "__main__":
    asyncio.run(main())
