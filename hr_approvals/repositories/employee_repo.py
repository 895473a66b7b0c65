"""Employee Repository - Read access to the org chart"""
from typing import List, Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..domain.models import Employee
from ..domain.errors import EmployeeNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EmployeeRepository:
    """Repository for the employee directory"""

    def __init__(self):
        self._employees: Collection = get_collection("employees")

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        doc = self._employees.find_one({"employee_id": employee_id})
        if doc:
            doc.pop("_id", None)
            return Employee.model_validate(doc)
        return None

    def get_employee_or_raise(self, employee_id: str) -> Employee:
        employee = self.get_employee(employee_id)
        if not employee:
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        return employee

    def get_manager(self, employee_id: str) -> Optional[Employee]:
        """Direct manager of an employee, if any"""
        employee = self.get_employee(employee_id)
        if not employee or not employee.manager_id:
            return None
        return self.get_employee(employee.manager_id)

    def list_by_role(self, role: str) -> List[Employee]:
        """Active employees holding a role, in a stable order"""
        cursor = self._employees.find({"roles": role, "is_active": True}).sort("employee_id", 1)
        employees = []
        for doc in cursor:
            doc.pop("_id", None)
            employees.append(Employee.model_validate(doc))
        return employees

    def list_active(self, exclude_id: Optional[str] = None) -> List[Employee]:
        """Active employees sorted by name"""
        query = {"is_active": True}
        if exclude_id:
            query["employee_id"] = {"$ne": exclude_id}
        cursor = self._employees.find(query).sort("display_name", 1)
        employees = []
        for doc in cursor:
            doc.pop("_id", None)
            employees.append(Employee.model_validate(doc))
        return employees

    def upsert_employee(self, employee: Employee) -> Employee:
        """Insert or replace a directory entry (seeding)"""
        doc = employee.model_dump(mode="json")
        doc["_id"] = employee.employee_id
        self._employees.replace_one({"employee_id": employee.employee_id}, doc, upsert=True)
        return employee
