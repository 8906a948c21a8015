from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from library_service.api.dependencies import get_library_service
from library_service.core.exceptions import AuthorNotFoundError
from library_service.schemas.library import AuthorCreate, AuthorResponse, AuthorUpdate, BookResponse
from library_service.services.library import LibraryService

router = APIRouter(prefix="/authors", tags=["authors"])


@router.post("", response_model=AuthorResponse, status_code=status.HTTP_201_CREATED)
async def register_author(
    author_data: AuthorCreate,
    service: LibraryService = Depends(get_library_service)
) -> AuthorResponse:
    return await service.register_author(author_data)


@router.get("/{author_id}", response_model=AuthorResponse)
async def get_author(
    author_id: UUID,
    service: LibraryService = Depends(get_library_service)
) -> AuthorResponse:
    try:
        return await service.get_author(str(author_id))
    except AuthorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{author_id}", response_model=AuthorResponse)
async def change_author(
    author_id: UUID,
    author_data: AuthorUpdate,
    service: LibraryService = Depends(get_library_service)
) -> AuthorResponse:
    try:
        return await service.change_author(str(author_id), author_data)
    except AuthorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{author_id}/books", response_model=List[BookResponse])
async def get_author_books(
    author_id: UUID,
    service: LibraryService = Depends(get_library_service)
) -> List[BookResponse]:
    return await service.get_author_books(str(author_id))
