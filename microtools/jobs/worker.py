from arq import cron
from arq.connections import RedisSettings
from opentelemetry import trace

from microtools.bootstrap import build_components
from microtools.config import settings
from microtools.db.base import async_engine
from microtools.utils.telemetry import init_otel


async def purge_expired(ctx) -> dict:
    """Hourly sweep for deployments that run it out of the API process."""
    tracer = trace.get_tracer("worker")
    with tracer.start_as_current_span("purge_expired"):
        report = await ctx["components"].sweeper.run_once()
    return report.as_dict()


class WorkerSettings:
    functions = [purge_expired]
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    cron_jobs = [
        cron(purge_expired, minute={0}),
    ]

    @staticmethod
    async def startup(ctx):
        ctx["components"] = build_components(settings)
        if settings.OTEL_ENABLED:
            init_otel(engine=async_engine, service_name="microtools-worker")

    @staticmethod
    async def shutdown(ctx):
        await async_engine.dispose()
