from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from .. import schemas
from ..database import get_db
from ..services import CustomerService

router = APIRouter(prefix="/api", tags=["Reference data"])

@router.get("/countries", response_model=List[schemas.CountryResponse])
async def read_countries(db: AsyncSession = Depends(get_db)):
    """Countries an address can point to, sorted by name."""
    return await CustomerService.get_countries(db)
