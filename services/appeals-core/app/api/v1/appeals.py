"""
Appeals API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from app.core.config import settings
from app.core.database import get_database
from app.core.exceptions import AppealNotFoundError, AppealValidationError
from app.models.appeal import Appeal, AppealResponse, AppealStatus
from app.services.appeal_lifecycle import AppealLifecycle

router = APIRouter()


class AppealCreateRequest(BaseModel):
    topic: str = Field(..., examples=["Water"])
    message: str = Field(..., examples=["No hot water"])


class AppealCompleteRequest(BaseModel):
    solution: Optional[str] = Field(None, examples=["Fixed valve"])


class AppealCancelRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class CancelAllInWorkRequest(BaseModel):
    response_message: Optional[str] = None


class AppealOut(BaseModel):
    id: int
    topic: str
    message: str
    status: AppealStatus
    response_message: Optional[str] = None
    init_date: datetime
    update_date: datetime
    
    class Config:
        from_attributes = True


class AppealResponseOut(BaseModel):
    id: int
    appeal_id: int
    response_message: str
    date: datetime
    
    class Config:
        from_attributes = True


class CancelAllInWorkResponse(BaseModel):
    message: str
    count: int
    appeals: List[AppealOut]


def get_lifecycle(request: Request) -> AppealLifecycle:
    """Lifecycle bound to the database created at startup"""
    return AppealLifecycle(
        get_database(request),
        require_response_message=settings.REQUIRE_RESPONSE_MESSAGE,
        bulk_cancel_default_reason=settings.BULK_CANCEL_DEFAULT_REASON
    )


def _appeal_out(appeal: Appeal) -> AppealOut:
    return AppealOut.model_validate(appeal)


@router.post("", response_model=AppealOut, status_code=201)
def submit_appeal(
    request: AppealCreateRequest,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Submit a new appeal"""
    try:
        appeal = lifecycle.submit(request.topic, request.message)
    except AppealValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _appeal_out(appeal)


@router.get("", response_model=List[AppealOut])
def list_appeals(
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    status: Optional[AppealStatus] = Query(None),
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """List appeals, newest first"""
    appeals = lifecycle.list(
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        status=status
    )
    return [_appeal_out(appeal) for appeal in appeals]


@router.put("/cancel-all-in-work", response_model=CancelAllInWorkResponse)
def cancel_all_in_work(
    request: Optional[CancelAllInWorkRequest] = None,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Cancel every appeal currently in progress"""
    reason = request.response_message if request else None
    try:
        count, appeals = lifecycle.cancel_all_in_work(reason)
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CancelAllInWorkResponse(
        message=f"Cancelled {count} appeals",
        count=count,
        appeals=[_appeal_out(appeal) for appeal in appeals]
    )


@router.get("/{appeal_id}", response_model=AppealOut)
def get_appeal(
    appeal_id: int,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Get appeal details"""
    try:
        appeal = lifecycle.get(appeal_id)
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _appeal_out(appeal)


@router.get("/{appeal_id}/responses", response_model=List[AppealResponseOut])
def get_appeal_responses(
    appeal_id: int,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Get resolution and cancellation history for an appeal"""
    try:
        responses: List[AppealResponse] = lifecycle.responses(appeal_id)
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [AppealResponseOut.model_validate(response) for response in responses]


@router.put("/{appeal_id}/take", response_model=AppealOut)
def take_appeal(
    appeal_id: int,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Take a new appeal into work"""
    try:
        appeal = lifecycle.take(appeal_id)
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _appeal_out(appeal)


@router.put("/{appeal_id}/complete", response_model=AppealOut)
def complete_appeal(
    appeal_id: int,
    request: Optional[AppealCompleteRequest] = None,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Complete an appeal that is in progress"""
    try:
        appeal = lifecycle.complete(appeal_id, request.solution if request else None)
    except AppealValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _appeal_out(appeal)


@router.put("/{appeal_id}/cancel", response_model=AppealOut)
def cancel_appeal(
    appeal_id: int,
    request: Optional[AppealCancelRequest] = None,
    lifecycle: AppealLifecycle = Depends(get_lifecycle)
):
    """Cancel a new or in-progress appeal"""
    try:
        appeal = lifecycle.cancel(appeal_id, request.cancellation_reason if request else None)
    except AppealValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AppealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _appeal_out(appeal)
