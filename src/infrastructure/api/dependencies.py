from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.application.use_cases.batch_process_image import BatchProcessImageUseCase
from src.application.use_cases.compute_histogram import HistogramCache
from src.config import get_settings
from src.domain.services.derivation_resolver import DerivationResolver
from src.domain.services.processing_service import ProcessingService
from src.infrastructure.database.repositories.history_repository import HistoryRepository
from src.infrastructure.database.repositories.image_repository import ImageRepository
from src.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    UserInfo,
    get_supabase_client,
)
from src.infrastructure.storage.supabase_storage import SupabaseStorage

_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_adapter() -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def get_storage() -> SupabaseStorage:
    return SupabaseStorage(get_supabase_client())


def get_image_repo() -> ImageRepository:
    return ImageRepository(get_supabase_client())


def get_history_repo() -> HistoryRepository:
    return HistoryRepository(get_supabase_client())


def get_processing_service() -> ProcessingService:
    return ProcessingService()


def get_resolver(image_repo: ImageRepository = Depends(get_image_repo)) -> DerivationResolver:
    return DerivationResolver(image_repo, max_depth=get_settings().max_chain_depth)


@lru_cache(maxsize=1)
def get_histogram_cache() -> HistogramCache:
    return HistogramCache(maxsize=get_settings().histogram_cache_size)


def get_batch_use_case(
    storage: SupabaseStorage = Depends(get_storage),
    image_repo: ImageRepository = Depends(get_image_repo),
    history_repo: HistoryRepository = Depends(get_history_repo),
    processing: ProcessingService = Depends(get_processing_service),
    resolver: DerivationResolver = Depends(get_resolver),
) -> BatchProcessImageUseCase:
    return BatchProcessImageUseCase(
        storage=storage,
        image_repo=image_repo,
        history_repo=history_repo,
        processing=processing,
        resolver=resolver,
    )
