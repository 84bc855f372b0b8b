"""Crew and crew message endpoints."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    CrewCreate,
    CrewMessageCreate,
    CrewMessageResponse,
    CrewResponse,
    CrewUpdate,
)
from ..use_cases.crews import (
    create_crew_use_case,
    delete_crew_use_case,
    get_crew_or_404,
    list_crew_messages_use_case,
    list_crews_by_type_use_case,
    list_crews_use_case,
    mark_crew_messages_read_use_case,
    post_crew_message_use_case,
    update_crew_use_case,
)

router = APIRouter(prefix="/crews", tags=["crews"])


@router.get("", response_model=list[CrewResponse])
def get_crews(db: Session = Depends(get_db)):
    """List crews with the complaint types they handle."""
    return list_crews_use_case(db=db)


@router.post("", response_model=CrewResponse, status_code=status.HTTP_201_CREATED)
def create_crew(data: CrewCreate, db: Session = Depends(get_db)):
    return create_crew_use_case(db=db, data=data)


@router.get("/by-type/{type_id}", response_model=list[CrewResponse])
def get_crews_by_type(type_id: int, db: Session = Depends(get_db)):
    """Crews able to handle a complaint type."""
    return list_crews_by_type_use_case(db=db, type_id=type_id)


@router.get("/{crew_id}", response_model=CrewResponse)
def get_crew(crew_id: int, db: Session = Depends(get_db)):
    return get_crew_or_404(db=db, crew_id=crew_id)


@router.patch("/{crew_id}", response_model=CrewResponse)
def update_crew(crew_id: int, data: CrewUpdate, db: Session = Depends(get_db)):
    return update_crew_use_case(db=db, crew_id=crew_id, data=data)


@router.delete("/{crew_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_crew(crew_id: int, db: Session = Depends(get_db)):
    delete_crew_use_case(db=db, crew_id=crew_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{crew_id}/messages", response_model=list[CrewMessageResponse])
def get_crew_messages(crew_id: int, db: Session = Depends(get_db)):
    """Crew channel, oldest first."""
    return list_crew_messages_use_case(db=db, crew_id=crew_id)


@router.post("/{crew_id}/messages", response_model=CrewMessageResponse, status_code=status.HTTP_201_CREATED)
def post_crew_message(crew_id: int, data: CrewMessageCreate, db: Session = Depends(get_db)):
    return post_crew_message_use_case(db=db, crew_id=crew_id, data=data)


@router.patch("/{crew_id}/messages/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_crew_messages_read(crew_id: int, db: Session = Depends(get_db)):
    mark_crew_messages_read_use_case(db=db, crew_id=crew_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
