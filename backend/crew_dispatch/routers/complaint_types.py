"""Complaint type endpoints."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import ComplaintTypeCreate, ComplaintTypeResponse
from ..use_cases.crews import (
    create_complaint_type_use_case,
    delete_complaint_type_use_case,
    list_complaint_types_use_case,
    rename_complaint_type_use_case,
)

router = APIRouter(prefix="/complaint-types", tags=["complaint-types"])


@router.get("", response_model=list[ComplaintTypeResponse])
def get_complaint_types(db: Session = Depends(get_db)):
    return list_complaint_types_use_case(db=db)


@router.post("", response_model=ComplaintTypeResponse, status_code=status.HTTP_201_CREATED)
def create_complaint_type(data: ComplaintTypeCreate, db: Session = Depends(get_db)):
    return create_complaint_type_use_case(db=db, data=data)


@router.patch("/{type_id}", response_model=ComplaintTypeResponse)
def rename_complaint_type(type_id: int, data: ComplaintTypeCreate, db: Session = Depends(get_db)):
    return rename_complaint_type_use_case(db=db, type_id=type_id, data=data)


@router.delete("/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_complaint_type(type_id: int, db: Session = Depends(get_db)):
    delete_complaint_type_use_case(db=db, type_id=type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
