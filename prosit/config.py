"""Loading task sets from YAML documents.

Example document::

    tasks:
      - type: resource_reservation
        name: video
        computation_time: {type: uniform, min: 2, max: 8}
        period: 40
        budget: 10
        server_period: 20
        deadline_step: 40
        deadlines: [40, 80]
        qos: {type: linear, scale: 1.0, pmin: 0.5, pmax: 0.95, deadline: 40}
"""

import logging
from typing import Any, Dict, List, Mapping

import yaml

from prosit.builders import task_factory
from prosit.exceptions import DuplicateEntry, InvalidArgument, MissingField
from prosit.factory import require_field
from prosit.models import GenericTaskDescriptor

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Install a basic log handler (DEBUG when verbose, INFO otherwise)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def load_config(path: str) -> Dict[str, Any]:
    """Load a YAML configuration document."""
    with open(path, "r", encoding="utf-8") as f:
        document = yaml.safe_load(f)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise InvalidArgument(f"Configuration {path} must be a mapping at top level")
    return document


def build_tasks(document: Mapping[str, Any]) -> List[GenericTaskDescriptor]:
    """Build every task listed under ``tasks`` in ``document``.

    Raises:
        MissingField: If ``tasks`` or a task ``type`` is missing.
        DuplicateEntry: If two tasks share a name.
        UnknownType: If a task type has no registered builder.
    """
    entries = require_field(document, "tasks", "configuration")
    if not isinstance(entries, list):
        raise InvalidArgument(f"Field 'tasks' must be a list, got {entries!r}")

    tasks: List[GenericTaskDescriptor] = []
    names = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise InvalidArgument(f"Task entry {index} must be a mapping, got {entry!r}")
        if entry.get("type") is None:
            raise MissingField(f"Parameter 'type' undefined for task entry {index}")
        task = task_factory.create(entry["type"], entry)
        if task.name in names:
            raise DuplicateEntry(f"Task {task.name} defined more than once")
        names.add(task.name)
        tasks.append(task)

    LOGGER.info("Loaded %d tasks", len(tasks))
    return tasks


def load_tasks(path: str) -> List[GenericTaskDescriptor]:
    """Load a YAML document and build its tasks."""
    return build_tasks(load_config(path))
