# nowcapital/models/service/__init__.py
from nowcapital.models.service.client import NowCapitalClient
from nowcapital.models.service.jobs import JobKind, JobResolver
from nowcapital.models.service.connector import execute
