# Association write-through
#
# The relations found in a create or update request body are set after the record has been
# written. The writes are started together, there's no ordering between them.
# The first failure is raised and the remaining writes are cancelled: the request fails as a whole.
#
# The attribute write and the association writes are only atomic if the repository
# implements commit/rollback (the flask binding commits once per request)
#
import asyncio
from typing import Any, Dict, List, Tuple
import modelhandler
from .errors import AssociationWriteError


def pending_associations(model, body: Dict[str, Any]) -> List[Tuple[Any, Any]]:
    """
    :param model: ModelDescriptor
    :param body: request body
    :return: (RelationDescriptor, value) for the relations with a value in the body
    """
    if not isinstance(body, dict):
        return []
    return [(relation, body[name]) for name, relation in model.relations.items() if body.get(name) is not None]


async def _write(repository, record, relation, value) -> None:
    try:
        await repository.set_association(record, relation, value)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise AssociationWriteError(relation.name, exc) from exc


async def write_all(repository, record, pending) -> None:
    tasks = [asyncio.ensure_future(_write(repository, record, relation, value)) for relation, value in pending]
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        # retrieve the outcome of the other writes, only the first failure is raised
        await asyncio.gather(*tasks, return_exceptions=True)


def write_associations(repository, model, record, body: Dict[str, Any]) -> int:
    """
    Set the relations of `record` found in the request `body`

    :param repository: Repository
    :param model: ModelDescriptor
    :param record: created or updated record
    :param body: request body
    :return: number of relations written
    """
    pending = pending_associations(model, body)
    if not pending:
        return 0
    modelhandler.log.debug(f"Setting {model.name} relations {[relation.name for relation, _ in pending]}")
    asyncio.run(write_all(repository, record, pending))
    return len(pending)
