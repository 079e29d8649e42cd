"""
APPROVAL PIPELINE - Task Catalog
================================
Static registry of government approval services and helpers to turn it
(or a JSON file with the same shape) into TaskDefinitions.

The scheduler never fetches or mutates catalog data; callers hand it a
snapshot per build.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import DanglingReferenceError
from .schema import TaskDefinition

logger = logging.getLogger("approvals.catalog")

INVESTOR_TYPES = ("manufacturing", "services", "trading")


# ============================================================
# ONE-STOP-SERVICE APPROVAL CATALOG
# ============================================================

APPROVAL_SERVICES: List[Dict[str, Any]] = [
    {
        "id": "rjsc-name-clearance",
        "name": "Name Clearance",
        "authority": "RJSC",
        "duration_days": 3,
        "fee": 600,
        "required_documents": ["name-application"],
        "priority": "high",
        "critical_path": True,
    },
    {
        "id": "rjsc-registration",
        "name": "Company Registration",
        "authority": "RJSC",
        "duration_days": 7,
        "fee": 15000,
        "required_documents": ["memorandum", "articles", "director-ids", "address-proof"],
        "priority": "critical",
        "critical_path": True,
    },
    {
        "id": "trade-license",
        "name": "Trade License",
        "authority": "DSCC",
        "duration_days": 10,
        "fee": 5000,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["incorporation-cert", "office-lease"],
        "priority": "high",
        "critical_path": True,
    },
    {
        "id": "nbr-etin",
        "name": "eTIN Registration",
        "authority": "NBR",
        "duration_days": 5,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["incorporation-cert", "trade-license"],
        "priority": "high",
        "critical_path": True,
    },
    {
        "id": "nbr-vat",
        "name": "VAT Registration",
        "authority": "NBR",
        "duration_days": 10,
        "dependencies": ["nbr-etin"],
        "required_documents": ["etin-cert", "business-plan"],
        "critical_path": True,
    },
    {
        "id": "nbr-ebin",
        "name": "eBIN Registration",
        "authority": "NBR",
        "duration_days": 7,
        "dependencies": ["nbr-etin"],
        "required_documents": ["etin-cert", "factory-address"],
        "applicable_for": ["manufacturing", "trading"],
    },
    {
        "id": "bida-registration",
        "name": "BIDA Registration",
        "authority": "BIDA",
        "duration_days": 15,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["incorporation-cert", "project-profile"],
        "priority": "critical",
        "critical_path": True,
    },
    {
        "id": "bb-fx-approval",
        "name": "Foreign Exchange Approval",
        "authority": "Bangladesh Bank",
        "duration_days": 15,
        "dependencies": ["rjsc-registration", "nbr-etin"],
        "required_documents": ["bank-statement", "remittance-proof"],
        "critical_path": True,
    },
    {
        "id": "land-acquisition",
        "name": "Land Acquisition Approval",
        "authority": "Ministry of Land",
        "duration_days": 90,
        "fee": 500000,
        "dependencies": ["rjsc-registration", "bida-registration"],
        "required_documents": ["land-deed", "mutation-record"],
        "applicable_for": ["manufacturing"],
        "priority": "critical",
        "critical_path": True,
    },
    {
        "id": "building-permit",
        "name": "Building Construction Permit",
        "authority": "DSCC",
        "duration_days": 45,
        "fee": 100000,
        "dependencies": ["rjsc-registration", "land-acquisition"],
        "required_documents": ["building-plan", "structural-design"],
        "applicable_for": ["manufacturing", "services"],
        "critical_path": True,
    },
    {
        "id": "doe-clearance",
        "name": "Environmental Clearance",
        "authority": "DoE",
        "duration_days": 30,
        "fee": 50000,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["eia-report", "site-map", "waste-management"],
        "applicable_for": ["manufacturing"],
        "priority": "high",
        "critical_path": True,
    },
    {
        "id": "fire-clearance",
        "name": "Fire Safety Certificate",
        "authority": "Fire Service & Civil Defence",
        "duration_days": 15,
        "fee": 10000,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["building-plan", "fire-equipment", "evacuation-plan"],
        "applicable_for": ["manufacturing", "services"],
        "critical_path": True,
    },
    {
        "id": "dpdc-connection",
        "name": "Electricity Connection",
        "authority": "DPDC",
        "duration_days": 45,
        "fee": 150000,
        "dependencies": ["rjsc-registration", "fire-clearance"],
        "required_documents": ["load-application", "site-plan", "fire-cert"],
        "applicable_for": ["manufacturing"],
    },
    {
        "id": "wasa-connection",
        "name": "Water Connection",
        "authority": "WASA",
        "duration_days": 30,
        "fee": 50000,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["connection-form", "building-permit"],
        "applicable_for": ["manufacturing", "services"],
    },
    {
        "id": "titas-connection",
        "name": "Gas Connection",
        "authority": "Titas Gas",
        "duration_days": 60,
        "fee": 200000,
        "dependencies": ["rjsc-registration", "fire-clearance"],
        "required_documents": ["gas-application", "safety-measures"],
        "applicable_for": ["manufacturing"],
    },
    {
        "id": "work-permit",
        "name": "Work Permit",
        "authority": "BIDA",
        "duration_days": 30,
        "fee": 15000,
        "dependencies": ["rjsc-registration"],
        "required_documents": ["passport", "employment-contract"],
        "priority": "low",
    },
    {
        "id": "investor-visa",
        "name": "Investor Visa",
        "authority": "Department of Immigration & Passports",
        "duration_days": 20,
        "fee": 10000,
        "dependencies": ["rjsc-registration", "bida-registration"],
        "required_documents": ["passport", "bida-letter"],
        "priority": "low",
    },
]


def build_catalog(entries: Optional[Sequence[Dict[str, Any]]] = None) -> List[TaskDefinition]:
    """TaskDefinitions from raw catalog entries (defaults to APPROVAL_SERVICES)"""
    entries = APPROVAL_SERVICES if entries is None else entries
    return [TaskDefinition(**entry) for entry in entries]


def load_catalog(path: Union[str, Path]) -> List[TaskDefinition]:
    """Read a JSON list of task definitions"""
    with open(path, 'r') as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Catalog file must contain a JSON list: {path}")

    tasks = build_catalog(data)
    logger.info(f"📂 Loaded catalog: {path} ({len(tasks)} services)")
    return tasks


def select_tasks(catalog: Sequence[TaskDefinition], investor_type: str) -> List[TaskDefinition]:
    """
    Services applicable to an investor type.

    Prerequisites that exist in the catalog but fall outside the selected
    subset are dropped from the copies returned; the catalog itself is left
    untouched.

    Raises:
        DanglingReferenceError: a prerequisite is missing from the whole catalog
    """
    if investor_type not in INVESTOR_TYPES:
        raise ValueError(f"Unknown investor type: {investor_type} (expected one of {INVESTOR_TYPES})")

    catalog_ids = {t.id for t in catalog}
    for task in catalog:
        for dep_id in task.dependencies:
            if dep_id not in catalog_ids:
                raise DanglingReferenceError(task.id, dep_id)

    selected = [
        t for t in catalog
        if "all" in t.applicable_for or investor_type in t.applicable_for
    ]
    selected_ids = {t.id for t in selected}

    subset = []
    for task in selected:
        deps = [d for d in task.dependencies if d in selected_ids]
        if len(deps) != len(task.dependencies):
            task = task.model_copy(update={"dependencies": deps})
        subset.append(task)

    logger.debug(f"Selected {len(subset)}/{len(catalog)} services for {investor_type}")
    return subset
