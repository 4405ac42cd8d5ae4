"""Authorization and lock rules as pure functions over (actor, order, epod).

Nothing here touches the session or the object store; services load the rows,
ask for a decision and call :func:`enforce` before writing anything.
"""

from dataclasses import dataclass

from driver_api import errors
from driver_api.auth.actor import Actor, AdminActor, DriverActor
from driver_api.models.epod_file import EpodFile, EpodStatus
from driver_api.models.order import Order, OrderStatus


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Deny:
    error: errors.DomainError


Decision = Allow | Deny

ALLOW = Allow()


def enforce(decision: Decision) -> None:
    if isinstance(decision, Deny):
        raise decision.error


def is_locked_for(actor: Actor, order: Order) -> bool:
    # Drivers lose access once an admin completes the order; admins keep it
    # until the financial records exist.
    if isinstance(actor, AdminActor):
        return order.is_invoiced
    return order.is_completed_by_admin


def _driver_ownership(actor: DriverActor, order: Order) -> Decision:
    if actor.driver_id is None:
        return Deny(errors.Forbidden("Driver profile not found.", errors.DRIVER_PROFILE_NOT_FOUND))
    if order.driver_id is None or order.driver_id != actor.driver_id:
        return Deny(
            errors.Forbidden(
                "Driver cannot handle ePOD for someone else's order.", errors.NOT_YOUR_ORDER
            )
        )
    return ALLOW


def can_modify_order(actor: Actor, order: Order) -> Decision:
    """Delivery-status changes. Foreign orders look absent to a driver."""
    if isinstance(actor, AdminActor):
        return ALLOW
    if actor.driver_id is None:
        return Deny(errors.Forbidden("Driver profile not found.", errors.DRIVER_PROFILE_NOT_FOUND))
    if order.driver_id != actor.driver_id:
        return Deny(errors.NotFound("Order not found."))
    return ALLOW


def can_request_upload_slot(actor: Actor, order: Order, epod: EpodFile | None) -> Decision:
    if isinstance(actor, AdminActor):
        return ALLOW
    if is_locked_for(actor, order):
        return Deny(
            errors.Forbidden("Order is completed and locked by admin.", errors.ORDER_LOCKED)
        )
    ownership = _driver_ownership(actor, order)
    if isinstance(ownership, Deny):
        return ownership
    if epod is not None and epod.status == EpodStatus.CONFIRMED:
        return Deny(
            errors.Conflict("Driver cannot replace a confirmed ePOD.", errors.EPOD_ALREADY_EXISTS)
        )
    return ALLOW


def can_attach_epod(
    actor: Actor,
    order: Order,
    epod: EpodFile | None,
    blob_name: str | None,
) -> Decision:
    """Linking an artifact to the order.

    ``blob_name`` is None when the artifact is rendered server-side from
    photos; then an abandoned upload slot (Pending, never uploaded) may be
    replaced, while a client-side attach must resume the exact slot it got.
    """
    if is_locked_for(actor, order):
        message = (
            "Order is invoiced and locked."
            if isinstance(actor, AdminActor)
            else "Order is completed and locked by admin."
        )
        return Deny(errors.Forbidden(message, errors.ORDER_LOCKED))

    if isinstance(actor, AdminActor):
        return ALLOW

    ownership = _driver_ownership(actor, order)
    if isinstance(ownership, Deny):
        return ownership

    if epod is not None:
        if epod.status != EpodStatus.PENDING:
            return Deny(
                errors.Conflict(
                    "Driver cannot edit or overwrite existing ePOD.", errors.EPOD_ALREADY_EXISTS
                )
            )
        if blob_name is None:
            if epod.uploaded_utc is not None:
                return Deny(
                    errors.Conflict(
                        "Driver cannot edit or overwrite existing ePOD.",
                        errors.EPOD_ALREADY_EXISTS,
                    )
                )
        elif epod.blob_name and epod.blob_name != blob_name:
            return Deny(
                errors.InvalidArgument(
                    "Blob name does not match the reserved upload slot.",
                    errors.EPOD_BLOBNAME_MISMATCH,
                )
            )

    if order.status != OrderStatus.DELIVERED:
        return Deny(
            errors.Conflict(
                "ePOD can be added only when order status is Delivered.",
                errors.EPOD_NOT_DELIVERED,
            )
        )
    return ALLOW


def can_edit_order(order: Order) -> Decision:
    if order.is_archived:
        return Deny(errors.PipelineConflict("Archived orders cannot be changed."))
    if order.is_invoiced:
        return Deny(errors.PipelineConflict("Invoiced orders cannot be changed."))
    return ALLOW
