from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

def register_models():
    # imported for their side effect on Base.metadata
    from crewdesk.modules.departments import models as _departments  # noqa: F401
    from crewdesk.modules.schedules import models as _schedules  # noqa: F401
    from crewdesk.modules.appointments import models as _appointments  # noqa: F401
    from crewdesk.modules.qr import models as _qr  # noqa: F401
    from crewdesk.modules.events import outbox as _outbox  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode, build the schema; otherwise, migrations own it.
    if settings.DB_MANAGE == "create_all":
        register_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
