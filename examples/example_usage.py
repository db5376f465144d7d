"""Use the service layer directly, without Flask.

Controllers stay thin; every rule (scoping, transitions, validation) lives in the services.
"""

import importlib

from dotenv import load_dotenv

from etms.access.policy import Identity
from etms.config import get_settings_module
from etms.container import build_container
from etms.core.enums import Role
from etms.employees.model import EmployeeFilters


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)
    container.conn.open()
    try:
        user = container.repos.users.get_by_email("manager@etms.com")
        if user is None:
            raise SystemExit("Run scripts/seed_db.py first.")
        identity = Identity(user_id=user.user_id, role=Role(user.role), employee_id=user.employee_id, email=user.email)

        for employee in container.employee_service.search(identity, EmployeeFilters(search="a"), limit=10):
            print(employee.employee_code, employee.full_name, employee.department)

        print(container.task_service.project_stats(identity))
        print(container.report_service.dashboard(identity))
    finally:
        container.conn.close()


if __name__ == "__main__":
    main()
