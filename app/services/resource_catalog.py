"""
Kennel Resource Catalog

Owns the kennel records: creation, edits, the maintenance toggle, and
removal. Removal never destroys history: a kennel that any segment still
references is archived instead of deleted, and a kennel with current or
future stays can only go away with an explicit cascade plan.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import AsyncSessionLocal
from app.models.kennel import Kennel, KENNEL_SIZES
from app.models.segment import Segment
from app.services.assignment_service import load_kennel, with_booking_segments
from app.services.errors import CapacityExceededError, GuardError, ValidationError
from app.services.kennel_locks import KennelLockManager, claim_version, get_lock_manager
from app.services.occupancy_calculator import count_by_day
from app.services.reassignment_service import ReassignmentService

logger = logging.getLogger(__name__)

CASCADE_KEEP_HISTORY = "keep_history"
CASCADE_REASSIGN = "reassign"
CASCADE_STRATEGIES = (CASCADE_KEEP_HISTORY, CASCADE_REASSIGN)

EDITABLE_FIELDS = (
    "name",
    "capacity",
    "building",
    "floor",
    "kennel_type",
    "size",
    "special_handling",
    "amenities",
    "notes",
)


def serialize_kennel(kennel: Kennel) -> Dict[str, Any]:
    return {
        "id": kennel.id,
        "name": kennel.name,
        "capacity": kennel.capacity,
        "building": kennel.location_building,
        "floor": kennel.location_floor,
        "kennel_type": kennel.kennel_type,
        "size": kennel.size,
        "special_handling": kennel.special_handling,
        "amenities": list(kennel.amenities or []),
        "notes": kennel.notes,
        "is_active": kennel.is_active,
        "archived": kennel.is_archived,
    }


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_kennel_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalise and validate kennel attributes.

    Raises:
        ValidationError: If any field is malformed
    """
    cleaned = dict(fields)

    if "name" in cleaned:
        name = _clean_text(cleaned["name"])
        if not name:
            raise ValidationError("Kennel name is required")
        cleaned["name"] = name

    if "capacity" in cleaned:
        capacity = cleaned["capacity"]
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValidationError(f"Kennel capacity must be an integer >= 1, got {capacity!r}")

    for key in ("building", "floor", "notes"):
        if key in cleaned:
            cleaned[key] = _clean_text(cleaned[key])

    if "kennel_type" in cleaned:
        kennel_type = _clean_text(cleaned["kennel_type"])
        if not kennel_type:
            raise ValidationError("Kennel type cannot be empty")
        cleaned["kennel_type"] = kennel_type.upper()

    if cleaned.get("size") is not None:
        size = cleaned["size"].strip().upper()
        if size not in KENNEL_SIZES:
            raise ValidationError(f"Invalid kennel size: {size}. Must be one of: {KENNEL_SIZES}")
        cleaned["size"] = size

    if "special_handling" in cleaned:
        if cleaned["special_handling"] is None:
            raise ValidationError("Kennel special_handling must be true or false")
        cleaned["special_handling"] = bool(cleaned["special_handling"])

    if "amenities" in cleaned:
        amenities = cleaned["amenities"] or []
        cleaned["amenities"] = sorted({a.strip() for a in amenities if a and a.strip()})

    return cleaned


def split_by_today(segments: Iterable[Segment], today: date):
    """Partition segments into (current_or_future_active, everything_else)."""
    upcoming, history = [], []
    for segment in segments:
        if segment.is_active and segment.end_date >= today:
            upcoming.append(segment)
        else:
            history.append(segment)
    return upcoming, history


class ResourceCatalog:
    """Kennel records and the maintenance toggle"""

    def __init__(
        self,
        session_factory: async_sessionmaker = None,
        locks: KennelLockManager = None,
        reassignment: ReassignmentService = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.locks = locks or get_lock_manager()
        self.reassignment = reassignment or ReassignmentService(
            session_factory=self.session_factory, locks=self.locks
        )

    async def create_kennel(
        self,
        name: str,
        capacity: int = 1,
        building: Optional[str] = None,
        floor: Optional[str] = None,
        kennel_type: str = "KENNEL",
        size: Optional[str] = None,
        special_handling: bool = False,
        amenities: Optional[List[str]] = None,
        notes: Optional[str] = None,
        is_active: bool = True,
        kennel_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Add a kennel to the facility.

        Raises:
            ValidationError: Missing name, capacity < 1, unknown size, duplicate id
        """
        fields = validate_kennel_fields({
            "name": name,
            "capacity": capacity,
            "building": building,
            "floor": floor,
            "kennel_type": kennel_type,
            "size": size,
            "amenities": amenities,
            "notes": notes,
        })

        async with self.session_factory() as session:
            if kennel_id is not None and await session.get(Kennel, kennel_id) is not None:
                raise ValidationError(f"Kennel '{kennel_id}' already exists")

            kennel = Kennel(special_handling=bool(special_handling), is_active=bool(is_active), **fields)
            if kennel_id is not None:
                kennel.id = kennel_id
            session.add(kennel)
            await session.commit()

            logger.info(f"Created kennel {kennel.id} '{kennel.name}' (capacity {kennel.capacity})")
            return serialize_kennel(kennel)

    async def get_kennel(self, kennel_id: str) -> Dict[str, Any]:
        async with self.session_factory() as session:
            return serialize_kennel(await load_kennel(session, kennel_id, include_archived=True))

    async def list_kennels(self, include_archived: bool = False) -> List[Dict[str, Any]]:
        async with self.session_factory() as session:
            kennels = await self.load_kennels(session, include_archived=include_archived)
            return [serialize_kennel(kennel) for kennel in kennels]

    async def load_kennels(self, session: AsyncSession, include_archived: bool = False) -> List[Kennel]:
        stmt = select(Kennel).order_by(Kennel.building, Kennel.floor, Kennel.name, Kennel.id)
        if not include_archived:
            stmt = stmt.where(Kennel.archived_at.is_(None))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def update_kennel(self, kennel_id: str, today: Optional[date] = None, **changes: Any) -> Dict[str, Any]:
        """
        Edit kennel attributes.

        Capacity may only be lowered to a value every current and future day
        still fits within.

        Raises:
            NotFoundError: Unknown or archived kennel
            ValidationError: Unknown field or malformed value
            CapacityExceededError: New capacity below booked occupancy
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update kennel field(s): {', '.join(sorted(unknown))}")
        fields = validate_kennel_fields(changes)
        today = today or date.today()

        async with self.locks.hold(kennel_id):
            async with self.session_factory() as session:
                kennel = await load_kennel(session, kennel_id)

                new_capacity = fields.get("capacity")
                if new_capacity is not None and new_capacity < kennel.capacity:
                    peak = await self._peak_from(session, kennel, today)
                    if peak > new_capacity:
                        raise CapacityExceededError(
                            f"Kennel '{kennel.name}' has {peak} pets booked on one day from {today}; "
                            f"capacity cannot drop to {new_capacity}"
                        )

                await claim_version(session, Kennel, kennel)
                for key, value in fields.items():
                    setattr(kennel, key, value)
                await session.commit()

                logger.info(f"Updated kennel {kennel_id}: {sorted(fields)}")
                return serialize_kennel(kennel)

    async def _peak_from(self, session: AsyncSession, kennel: Kennel, today: date) -> int:
        detector = self.reassignment.detector
        segments = await detector.load_kennel_segments(session, kennel.id, today, date.max)
        if not segments:
            return 0
        horizon = max(segment.end_date for segment in segments)
        counts = count_by_day(segments, today, max(horizon, today), detector.policy)
        return max(counts) if counts else 0

    async def set_active(self, kennel_id: str, is_active: bool) -> Dict[str, Any]:
        """
        Put a kennel into or out of maintenance.

        Only the flag changes: current occupants stay where they are, the
        kennel just stops accepting new assignments and moves.

        Raises:
            NotFoundError: Unknown kennel
            GuardError: Reactivating an archived kennel
            ConflictError: The kennel changed while the flag was being set
        """
        async with self.locks.hold(kennel_id):
            async with self.session_factory() as session:
                kennel = await load_kennel(session, kennel_id, include_archived=True)
                if kennel.is_archived and is_active:
                    raise GuardError(f"Kennel '{kennel.name}' is archived and cannot be reactivated")
                if kennel.is_active != is_active:
                    # Bumping the version fails any in-flight assignment that read the old flag
                    await claim_version(session, Kennel, kennel)
                    kennel.is_active = is_active
                    await session.commit()
                    logger.info(f"Kennel {kennel_id} {'activated' if is_active else 'set to maintenance'}")
                return serialize_kennel(kennel)

    async def delete_kennel(
        self,
        kennel_id: str,
        cascade: Optional[str] = None,
        target_kennel_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Remove a kennel from the catalog.

        Args:
            kennel_id: Kennel to remove
            cascade: None, "keep_history" or "reassign"
            target_kennel_id: Destination for current/future stays ("reassign")
            today: Reference day separating history from upcoming stays

        Returns:
            Dict with kennel_id, outcome ("deleted" or "archived") and the
            number of segments moved

        Raises:
            NotFoundError: Unknown kennel or target kennel
            ValidationError: Unknown cascade, or "reassign" without a valid target
            GuardError: Current/future stays without a reassign plan, or
                history without an explicit strategy
            InactiveResourceError / CapacityExceededError: A stay cannot be
                moved to the target; nothing is changed
        """
        if cascade is not None and cascade not in CASCADE_STRATEGIES:
            raise ValidationError(f"Invalid cascade strategy: {cascade}. Must be one of: {CASCADE_STRATEGIES}")
        if cascade == CASCADE_REASSIGN:
            if not target_kennel_id:
                raise ValidationError("The reassign cascade needs a target kennel")
            if target_kennel_id == kennel_id:
                raise ValidationError("Cannot reassign a kennel's stays to itself")
        today = today or date.today()

        lock_ids = (kennel_id, target_kennel_id if cascade == CASCADE_REASSIGN else None)
        async with self.locks.hold(*lock_ids):
            async with self.session_factory() as session:
                kennel = await load_kennel(session, kennel_id)
                result = await session.execute(
                    select(Segment)
                    .where(Segment.kennel_id == kennel_id)
                    .options(with_booking_segments())
                    .order_by(Segment.start_date, Segment.id)
                )
                segments = list(result.scalars().all())

                if not segments:
                    await session.delete(kennel)
                    await session.commit()
                    logger.info(f"Deleted kennel {kennel_id}")
                    return {"kennel_id": kennel_id, "outcome": "deleted", "segments_moved": 0}

                upcoming, history = split_by_today(segments, today)

                if cascade is None:
                    if upcoming:
                        raise GuardError(
                            f"Kennel '{kennel.name}' has {len(upcoming)} current or upcoming stay(s); "
                            "reassign them or pass a reassign cascade"
                        )
                    raise GuardError(
                        f"Kennel '{kennel.name}' has {len(history)} past stay(s); "
                        "pass cascade=keep_history to archive it"
                    )

                if cascade == CASCADE_KEEP_HISTORY and upcoming:
                    raise GuardError(
                        f"Kennel '{kennel.name}' has {len(upcoming)} current or upcoming stay(s); "
                        "keep_history only applies to kennels with past stays"
                    )

                moved = 0
                if cascade == CASCADE_REASSIGN:
                    target = await load_kennel(session, target_kennel_id)
                    for segment in upcoming:
                        await self.reassignment.apply_move(
                            session, segment, target, segment.start_date, segment.end_date
                        )
                        moved += 1

                kennel.is_active = False
                kennel.archived_at = datetime.now(timezone.utc)
                await session.commit()

        logger.info(f"Archived kennel {kennel_id} ({cascade}, {moved} stay(s) moved)")
        return {"kennel_id": kennel_id, "outcome": "archived", "segments_moved": moved}


# Global catalog instance
_catalog: Optional[ResourceCatalog] = None


def get_resource_catalog() -> ResourceCatalog:
    """Get or create global ResourceCatalog instance."""
    global _catalog
    if _catalog is None:
        _catalog = ResourceCatalog()
    return _catalog
