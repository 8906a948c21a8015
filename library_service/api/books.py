from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from library_service.api.dependencies import get_library_service
from library_service.core.exceptions import AuthorNotFoundError, BookNotFoundError
from library_service.schemas.library import BookCreate, BookResponse, BookUpdate
from library_service.services.library import LibraryService

router = APIRouter(prefix="/books", tags=["books"])


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def add_book(
    book_data: BookCreate,
    service: LibraryService = Depends(get_library_service)
) -> BookResponse:
    try:
        return await service.add_book(book_data)
    except AuthorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: UUID,
    service: LibraryService = Depends(get_library_service)
) -> BookResponse:
    try:
        return await service.get_book(str(book_id))
    except BookNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{book_id}", response_model=BookResponse)
async def update_book(
    book_id: UUID,
    book_data: BookUpdate,
    service: LibraryService = Depends(get_library_service)
) -> BookResponse:
    try:
        return await service.update_book(str(book_id), book_data)
    except (AuthorNotFoundError, BookNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
