import logging
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response, status

from notifyhub.api.deps import (
    AccountsDep,
    CurrentAdmin,
    CurrentUser,
    DispatchEngineDep,
    HistoryDep,
    RegistryDep,
)
from notifyhub.core.celery_utils import safe_celery_delay
from notifyhub.core.config import settings
from notifyhub.core.limiter import limiter
from notifyhub.models import User
from notifyhub.schemas import (
    ApiResponse,
    DispatchHistoryEntry,
    DispatchQueued,
    DispatchRecordRead,
    NotificationSendAll,
    NotificationSendToUsers,
    PaginatedNotifications,
    PushSubscriptionCreate,
    PushSubscriptionRead,
    SenderRead,
    SubscriptionStatus,
    UnsubscribeResult,
    UserList,
    UserSubscriptionSummary,
)
from notifyhub.services.dispatch import DispatchEngine
from notifyhub.tasks.dispatch import dispatch_notification_task

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/subscribe",
    response_model=ApiResponse[PushSubscriptionRead],
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe to push notifications",
)
def subscribe(
    request: Request,
    payload: PushSubscriptionCreate,
    current_user: CurrentUser,
    registry: RegistryDep,
) -> ApiResponse[PushSubscriptionRead]:
    """Register the browser endpoint for the current user, or refresh an existing one."""
    subscription = registry.register(
        current_user.id,
        payload.endpoint,
        payload.keys.p256dh,
        payload.keys.auth,
        user_agent=payload.client_descriptor or request.headers.get("user-agent"),
    )
    return ApiResponse(
        message="Subscription saved successfully",
        data=PushSubscriptionRead.model_validate(subscription),
    )


@router.delete(
    "/unsubscribe",
    response_model=ApiResponse[UnsubscribeResult],
    summary="Unsubscribe from push notifications",
)
def unsubscribe(current_user: CurrentUser, registry: RegistryDep) -> ApiResponse[UnsubscribeResult]:
    deactivated = registry.deactivate_all_for_account(current_user.id)
    return ApiResponse(
        message="Unsubscribed successfully",
        data=UnsubscribeResult(deactivated=deactivated),
    )


@router.get(
    "/subscription-status",
    response_model=ApiResponse[SubscriptionStatus],
    summary="Current user's subscription status",
)
def subscription_status(current_user: CurrentUser, registry: RegistryDep) -> ApiResponse[SubscriptionStatus]:
    count = registry.active_count_for_account(current_user.id)
    return ApiResponse(
        data=SubscriptionStatus(has_active_subscription=count > 0, subscription_count=count),
    )


def _dispatch_or_queue(
    response: Response,
    dispatcher: DispatchEngine,
    sender: User,
    title: str,
    message: str,
    user_ids: list[UUID] | None,
    icon: str | None,
    url: str | None,
    background: bool,
) -> ApiResponse:
    if background:
        # Reject bad requests before anything is queued
        dispatcher.validate_request(sender, title, message, user_ids, icon, url)
        result = safe_celery_delay(
            dispatch_notification_task,
            str(sender.id),
            title,
            message,
            [str(user_id) for user_id in user_ids] if user_ids is not None else None,
            icon,
            url,
        )
        if result is not None:
            response.status_code = status.HTTP_202_ACCEPTED
            return ApiResponse(
                message="Notification queued",
                data=DispatchQueued(task_id=result.id),
            )
        logger.warning("Task broker unavailable, dispatching inline")

    record = dispatcher.dispatch(sender, title, message, user_ids, icon, url)
    return ApiResponse(
        message="Notification sent successfully",
        data=DispatchRecordRead.model_validate(record),
    )


@router.post(
    "/send-to-all",
    response_model=ApiResponse[DispatchRecordRead | DispatchQueued],
    summary="Send notification to all subscribers",
)
@limiter.limit(settings.DISPATCH_RATE_LIMIT)
def send_to_all(
    request: Request,
    response: Response,
    payload: NotificationSendAll,
    current_user: CurrentAdmin,
    dispatcher: DispatchEngineDep,
    background: bool = Query(default=False, description="Queue the dispatch on a worker"),
) -> ApiResponse:
    return _dispatch_or_queue(
        response,
        dispatcher,
        current_user,
        payload.title,
        payload.message,
        None,
        payload.icon,
        payload.url,
        background,
    )


@router.post(
    "/send-to-users",
    response_model=ApiResponse[DispatchRecordRead | DispatchQueued],
    summary="Send notification to specific users",
)
@limiter.limit(settings.DISPATCH_RATE_LIMIT)
def send_to_users(
    request: Request,
    response: Response,
    payload: NotificationSendToUsers,
    current_user: CurrentAdmin,
    dispatcher: DispatchEngineDep,
    background: bool = Query(default=False, description="Queue the dispatch on a worker"),
) -> ApiResponse:
    return _dispatch_or_queue(
        response,
        dispatcher,
        current_user,
        payload.title,
        payload.message,
        payload.user_ids,
        payload.icon,
        payload.url,
        background,
    )


@router.get(
    "/history",
    response_model=ApiResponse[PaginatedNotifications[DispatchHistoryEntry]],
    summary="Notification history",
)
def get_history(
    current_user: CurrentAdmin,
    history: HistoryDep,
    accounts: AccountsDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> ApiResponse[PaginatedNotifications[DispatchHistoryEntry]]:
    result = history.page(page, limit)

    senders = {
        user.id: SenderRead.model_validate(user)
        for user in accounts.resolve_accounts({record.sent_by for record in result.records})
    }
    entries = []
    for record in result.records:
        entry = DispatchHistoryEntry.model_validate(record)
        entry.sent_by_user = senders.get(record.sent_by)
        entries.append(entry)

    return ApiResponse(
        data=PaginatedNotifications[DispatchHistoryEntry].create(
            items=entries,
            current_page=result.current_page,
            total_pages=result.total_pages,
            total=result.total_records,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
    )


@router.get(
    "/users",
    response_model=ApiResponse[UserList],
    summary="Users with their subscription state",
)
def list_users(
    current_user: CurrentAdmin,
    accounts: AccountsDep,
    registry: RegistryDep,
) -> ApiResponse[UserList]:
    # Two separate reads; counts may lag registrations made in between
    counts = registry.active_counts_by_account()
    users = []
    for user in accounts.list_accounts():
        summary = UserSubscriptionSummary.model_validate(user)
        summary.subscription_count = counts.get(user.id, 0)
        summary.has_active_subscription = summary.subscription_count > 0
        users.append(summary)
    return ApiResponse(data=UserList(users=users))
