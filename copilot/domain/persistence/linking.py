"""Secondary link: attaching saved intents to a dataset."""

from __future__ import annotations

import logging
from typing import Optional

from copilot.core.models.dataset import Dataset
from copilot.core.models.staging import DatasetLink
from copilot.core.notifications import Notifier
from copilot.infrastructure.resources.base import ResourceClient
from copilot.utils.logging import log_operation

logger = logging.getLogger(__name__)


class DatasetLinker:
    """Creates or resolves the target dataset and appends intent ids to it."""

    def __init__(self, datasets: ResourceClient, notifier: Optional[Notifier] = None):
        self.datasets = datasets
        self.notifier = notifier or Notifier()

    async def prepare(self, link: DatasetLink) -> DatasetLink:
        """Resolve a link once per pass.

        A ``new`` dataset is created here; the returned link is always
        ``existing`` so replays reuse the same dataset.

        Raises:
            ValueError: If the link lacks the name or id its mode needs
            ResourceError: If the dataset cannot be created
        """
        if link.mode == "existing":
            if not link.dataset_id:
                raise ValueError("Invalid dataset selection: no dataset id")
            return link

        if not link.dataset_name:
            raise ValueError("Dataset name is required")
        self.notifier.info("Creating dataset...", f"Creating dataset '{link.dataset_name}'")
        draft = Dataset(name=link.dataset_name)
        created = await self.datasets.create(draft.model_dump(exclude_none=True))
        dataset = Dataset.model_validate({**draft.model_dump(), **created})
        if not dataset.id:
            raise ValueError(f"Backend returned no id for dataset '{dataset.name}'")
        log_operation(logger, "Created dataset", {"name": dataset.name, "id": dataset.id})
        self.notifier.success("Dataset created", f"Created dataset '{dataset.name}'")
        return DatasetLink(mode="existing", dataset_id=dataset.id, dataset_name=dataset.name)

    async def attach(self, link: DatasetLink, resource_id: str) -> None:
        """Append ``resource_id`` to the dataset's intent list (read, then patch)."""
        dataset = Dataset.model_validate({"name": link.label, **(await self.datasets.get(link.dataset_id))})
        intents = list(dataset.intents)
        if resource_id not in intents:
            intents.append(resource_id)
        await self.datasets.update(link.dataset_id, {"intents": intents})
