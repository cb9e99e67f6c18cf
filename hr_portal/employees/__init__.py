"""Employees module — Employee model, schemas, ID generation and services."""

from hr_portal.employees.models import Employee

__all__ = ["Employee"]
