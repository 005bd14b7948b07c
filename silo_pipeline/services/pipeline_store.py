from __future__ import annotations

import abc
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from silo_pipeline.core.exceptions import StaleState
from silo_pipeline.models.application import Application
from silo_pipeline.services.pipeline_rules import PIPELINE_ORDER
from silo_pipeline.services.pipeline_types import ApplicationState


class PipelineStore(abc.ABC):
    """Persistence boundary for application stages."""

    @abc.abstractmethod
    async def get_application(self, application_id: UUID) -> ApplicationState | None: ...

    @abc.abstractmethod
    async def compare_and_set_stage(
        self, application_id: UUID, expected_current_stage: str, new_stage: str
    ) -> ApplicationState:
        """Move to ``new_stage`` only if the stored stage still is ``expected_current_stage``.

        Raises StaleState otherwise.
        """

    @abc.abstractmethod
    async def create_application(
        self, silo_id: str, product_category: str, stage: str, name: str | None = None
    ) -> ApplicationState: ...

    @abc.abstractmethod
    async def list_applications(self, silo_id: str) -> list[ApplicationState]: ...

    @abc.abstractmethod
    async def count_by_stage(self, silo_id: str) -> dict[str, int]: ...


def to_state(row: Application) -> ApplicationState:
    return ApplicationState(
        id=row.id,
        silo_id=row.silo_id,
        product_category=row.product_category,
        current_stage=row.current_stage,
        name=row.name,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


_STAGE_ORDER = case(
    {stage: index for index, stage in enumerate(PIPELINE_ORDER)},
    value=Application.current_stage,
    else_=len(PIPELINE_ORDER),
)


class SqlAlchemyPipelineStore(PipelineStore):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_application(self, application_id: UUID) -> ApplicationState | None:
        stmt = select(Application).where(Application.id == application_id)
        # Always read the committed row, never a stale identity-map copy.
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        row = result.scalar_one_or_none()
        return to_state(row) if row else None

    async def compare_and_set_stage(
        self, application_id: UUID, expected_current_stage: str, new_stage: str
    ) -> ApplicationState:
        stmt = (
            update(Application)
            .where(
                Application.id == application_id,
                Application.current_stage == expected_current_stage,
            )
            .values(
                current_stage=new_stage,
                version=Application.version + 1,
                updated_at=func.now(),
            )
            .returning(Application)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            await self.db.rollback()
            raise StaleState(str(application_id), expected_current_stage)
        state = to_state(row)
        await self.db.commit()
        return state

    async def create_application(
        self, silo_id: str, product_category: str, stage: str, name: str | None = None
    ) -> ApplicationState:
        row = Application(
            silo_id=silo_id,
            product_category=product_category,
            current_stage=stage,
            name=name,
            version=1,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return to_state(row)

    async def list_applications(self, silo_id: str) -> list[ApplicationState]:
        stmt = (
            select(Application)
            .where(Application.silo_id == silo_id)
            .order_by(_STAGE_ORDER, Application.created_at.asc(), Application.id.asc())
        )
        result = await self.db.execute(stmt)
        return [to_state(row) for row in result.scalars().all()]

    async def count_by_stage(self, silo_id: str) -> dict[str, int]:
        stmt = (
            select(Application.current_stage, func.count(Application.id))
            .where(Application.silo_id == silo_id)
            .group_by(Application.current_stage)
        )
        result = await self.db.execute(stmt)
        return {stage: int(count) for stage, count in result.all()}
