from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.clients.openai_compatible import OpenAICompatibleLLMClient
from assessment_engine.clients.retry import RetryPolicy
from assessment_engine.clients.stub import ScriptedLLMClient
from assessment_engine.config import EngineSettings
from assessment_engine.domain.cache import JsonCache
from assessment_engine.domain.contracts import CacheStore, LLMClient, RubricSource
from assessment_engine.domain.prompt_contract import PromptContract, load_prompt_contract
from assessment_engine.domain.use_cases.deps import StageDeps, StageSettings
from assessment_engine.repositories.cache_memory import InMemoryCacheStore
from assessment_engine.repositories.cache_postgres import AsyncpgPoolManager, PostgresCacheStore
from assessment_engine.repositories.rubrics import FileRubricSource


@dataclass
class RuntimeContainer:
    settings: EngineSettings
    llm: LLMClient
    cache_store: CacheStore
    rubrics: RubricSource
    prompts: PromptContract
    stage_deps: StageDeps
    api_deps: ApiDeps
    on_startup: Callable[[], Awaitable[None]] | None
    on_shutdown: Callable[[], Awaitable[None]] | None


def build_llm_client(settings: EngineSettings) -> LLMClient:
    if settings.llm_backend == "stub":
        return ScriptedLLMClient()
    return OpenAICompatibleLLMClient(
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
        timeout_ms=settings.llm_timeout_ms,
        retry_policy=RetryPolicy(retries=settings.llm_retries),
    )


def build_stage_settings(settings: EngineSettings) -> StageSettings:
    return StageSettings(
        judge_model=settings.judge_model,
        coach_model=settings.coach_model,
        default_rubric_set=settings.default_rubric_set,
        qualify_ttl_seconds=settings.qualify_ttl_seconds,
        assessment_ttl_seconds=settings.assessment_ttl_seconds,
        roleplay_ttl_seconds=settings.roleplay_ttl_seconds,
        business_context=settings.business.to_prompt_inputs(),
    )


def build_runtime_container(
    settings: EngineSettings,
    *,
    llm: LLMClient | None = None,
    cache_store: CacheStore | None = None,
    rubrics: RubricSource | None = None,
) -> RuntimeContainer:
    on_startup: Callable[[], Awaitable[None]] | None = None
    on_shutdown: Callable[[], Awaitable[None]] | None = None
    cache_backend = "memory"
    if cache_store is None:
        if settings.database_url:
            pool_manager = AsyncpgPoolManager(dsn=settings.database_url)
            postgres_store = PostgresCacheStore(pool_manager=pool_manager)

            async def _startup() -> None:
                await pool_manager.startup()
                await postgres_store.ensure_schema()
                await postgres_store.purge_expired()

            cache_store = postgres_store
            cache_backend = "postgres"
            on_startup = _startup
            on_shutdown = pool_manager.shutdown
        else:
            cache_store = InMemoryCacheStore()
    else:
        cache_backend = type(cache_store).__name__

    llm_client = llm if llm is not None else build_llm_client(settings)
    rubric_source = rubrics if rubrics is not None else FileRubricSource(directory=settings.rubrics_dir)
    prompts = load_prompt_contract(file_path=settings.prompt_contract_path)

    stage_deps = StageDeps(
        llm=llm_client,
        cache=JsonCache(store=cache_store, cache_version=settings.cache_version),
        rubrics=rubric_source,
        prompts=prompts,
        settings=build_stage_settings(settings),
    )
    api_deps = ApiDeps(
        stage=stage_deps,
        cache_backend=cache_backend,
        llm_backend=settings.llm_backend if llm is None else type(llm).__name__,
    )

    return RuntimeContainer(
        settings=settings,
        llm=llm_client,
        cache_store=cache_store,
        rubrics=rubric_source,
        prompts=prompts,
        stage_deps=stage_deps,
        api_deps=api_deps,
        on_startup=on_startup,
        on_shutdown=on_shutdown,
    )
