"""
Campaign Store for Puzzle Craft.

Owns the campaign lifecycle and the single-active invariant: for a shop, at
most one campaign is active. Activation (create, toggle on, update to active)
deactivates the siblings and activates the target inside one transaction;
the partial unique index on campaigns(shop) WHERE is_active turns a lost
race into an IntegrityError, which is retried a bounded number of times.
"""
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import database as default_database
from ..models.campaign import Campaign, PUZZLE_PIECE_OPTIONS, TIMER_OPTIONS, WIDGET_POSITIONS
from ..utils.coercion import parse_bool, parse_int
from ..utils.exceptions import NotFoundError, ValidationError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_PUZZLE_PIECES = 4
DEFAULT_TIMER = 30
DEFAULT_WIDGET_POSITION = 'right-bottom'


def _to_int(value, field: str) -> int:
    try:
        return parse_int(value)
    except ValueError:
        raise ValidationError(f'{field} must be a number', field)


def _to_bool(value, field: str) -> bool:
    try:
        return parse_bool(value)
    except ValueError:
        raise ValidationError(f'{field} must be true or false', field)


class CampaignStore:
    """
    Per-shop campaign persistence.

    Usage:
        store = CampaignStore()
        campaign = store.create(shop, {'name': 'Fall Sale', 'imageUrl': url})
        active = store.get_active(shop)
    """

    def __init__(self, database=None, activate_retries: int = None):
        self.database = database or default_database
        self._activate_retries = activate_retries

    @property
    def session(self):
        return self.database.session

    @property
    def activate_retries(self) -> int:
        if self._activate_retries is None:
            self._activate_retries = current_app.config.get('CAMPAIGN_ACTIVATE_RETRIES', 3)
        return self._activate_retries

    # ==================== VALIDATION ====================

    def validate(self, fields: Dict[str, Any], require_image: bool = True) -> Dict[str, Any]:
        """
        Validate campaign fields and return column values.

        Args:
            fields: Wire-format fields (name, imageUrl, puzzlePieces, widgetPosition, timer)
            require_image: False when the image is uploaded after validation

        Raises:
            ValidationError: naming the first invalid field
        """
        name = (fields.get('name') or '').strip()
        if not name:
            raise ValidationError('Campaign name is required', 'name')

        image_url = (fields.get('imageUrl') or '').strip()
        if require_image and not image_url:
            raise ValidationError('Campaign image is required', 'imageUrl')

        puzzle_pieces = fields.get('puzzlePieces')
        puzzle_pieces = DEFAULT_PUZZLE_PIECES if puzzle_pieces in (None, '') else _to_int(puzzle_pieces, 'puzzlePieces')
        if puzzle_pieces not in PUZZLE_PIECE_OPTIONS:
            raise ValidationError(
                f'puzzlePieces must be one of {", ".join(str(p) for p in PUZZLE_PIECE_OPTIONS)}',
                'puzzlePieces'
            )

        timer = fields.get('timer')
        timer = DEFAULT_TIMER if timer in (None, '') else _to_int(timer, 'timer')
        if timer not in TIMER_OPTIONS:
            raise ValidationError(
                f'timer must be one of {", ".join(str(t) for t in TIMER_OPTIONS)}',
                'timer'
            )

        widget_position = fields.get('widgetPosition') or DEFAULT_WIDGET_POSITION
        if widget_position not in WIDGET_POSITIONS:
            raise ValidationError(
                f'widgetPosition must be one of {", ".join(WIDGET_POSITIONS)}',
                'widgetPosition'
            )

        return {
            'name': name,
            'image_url': image_url,
            'puzzle_pieces': puzzle_pieces,
            'timer': timer,
            'widget_position': widget_position,
        }

    # ==================== READS ====================

    def get(self, campaign_id: int, shop: str) -> Campaign:
        """Get a campaign by id, scoped to the shop."""
        try:
            campaign = self.session.query(Campaign).filter_by(id=campaign_id, shop=shop).first()
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'load campaign')

        if not campaign:
            raise NotFoundError('Campaign', campaign_id)
        return campaign

    def list(self, shop: str) -> List[Campaign]:
        """All campaigns for the shop, newest first."""
        try:
            return (
                self.session.query(Campaign)
                .filter_by(shop=shop)
                .order_by(Campaign.created_at.desc(), Campaign.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'list campaigns')

    def get_active(self, shop: str) -> Optional[Campaign]:
        """
        The shop's active campaign, or None.

        If more than one campaign is active the newest wins and the others
        are deactivated by repair_active().
        """
        try:
            active = (
                self.session.query(Campaign)
                .filter_by(shop=shop, is_active=True)
                .order_by(Campaign.created_at.desc(), Campaign.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'load active campaign')

        if not active:
            return None

        newest = active[0]
        if len(active) > 1:
            logger.warning(
                f'Shop {shop} has {len(active)} active campaigns, keeping campaign {newest.id}'
            )
            try:
                self.repair_active(shop, keep_id=newest.id)
            except StorageError as e:
                logger.error(f'Active campaign repair failed for {shop}: {e}')

        return newest

    def stats(self, shop: str) -> Dict[str, int]:
        """Campaign counts for the shop."""
        try:
            total = self.session.query(Campaign).filter_by(shop=shop).count()
            active = self.session.query(Campaign).filter_by(shop=shop, is_active=True).count()
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'count campaigns')

        return {
            'total': total,
            'active': active,
            'inactive': total - active,
        }

    # ==================== WRITES ====================

    def create(self, shop: str, fields: Dict[str, Any]) -> Campaign:
        """Create a campaign as the shop's only active campaign."""
        values = self.validate(fields)

        def write():
            self._deactivate_siblings(shop)
            campaign = Campaign(shop=shop, is_active=True, **values)
            self.session.add(campaign)
            self.session.flush()
            return campaign

        campaign = self._activate(shop, write)
        logger.info(f'Created campaign {campaign.id} for {shop}')
        return campaign

    def update(self, campaign_id: int, shop: str, fields: Dict[str, Any]) -> Campaign:
        """
        Edit a campaign.

        Only the name is editable here; an isActive key is applied through
        set_active(). Other keys are ignored.
        """
        has_name = 'name' in fields
        has_active = 'isActive' in fields
        if not has_name and not has_active:
            raise ValidationError('No editable fields provided (name, isActive)')

        name = None
        if has_name:
            name = (fields.get('name') or '').strip()
            if not name:
                raise ValidationError('Campaign name is required', 'name')

        active = _to_bool(fields['isActive'], 'isActive') if has_active else None

        campaign = self.get(campaign_id, shop)

        if has_name:
            campaign.name = name
            self._commit('update campaign')

        if has_active:
            campaign = self.set_active(campaign_id, shop, active)

        return campaign

    def set_active(self, campaign_id: int, shop: str, active: bool) -> Campaign:
        """
        Set a campaign's active flag.

        Activating deactivates every sibling in the same transaction;
        deactivating only clears this campaign's flag.
        """
        campaign = self.get(campaign_id, shop)

        if not active:
            campaign.is_active = False
            self._commit('deactivate campaign')
            return campaign

        def write():
            self._deactivate_siblings(shop, keep_id=campaign_id)
            target = self.session.query(Campaign).filter_by(id=campaign_id, shop=shop).first()
            if not target:
                raise NotFoundError('Campaign', campaign_id)
            target.is_active = True
            self.session.flush()
            return target

        return self._activate(shop, write)

    def toggle(self, campaign_id: int, shop: str) -> Campaign:
        """Flip a campaign's active flag."""
        campaign = self.get(campaign_id, shop)
        return self.set_active(campaign_id, shop, not campaign.is_active)

    def delete(self, campaign_id: int, shop: str) -> None:
        """Remove a campaign. Deleting the active one leaves none active."""
        campaign = self.get(campaign_id, shop)
        self.session.delete(campaign)
        self._commit('delete campaign')
        logger.info(f'Deleted campaign {campaign_id} for {shop}')

    def repair_active(self, shop: str, keep_id: int = None) -> int:
        """
        Restore the single-active invariant for a shop.

        Keeps keep_id (or the newest active campaign) and deactivates the
        rest.

        Returns:
            Number of campaigns deactivated
        """
        try:
            if keep_id is None:
                newest = (
                    self.session.query(Campaign)
                    .filter_by(shop=shop, is_active=True)
                    .order_by(Campaign.created_at.desc(), Campaign.id.desc())
                    .first()
                )
                if not newest:
                    return 0
                keep_id = newest.id

            repaired = self._deactivate_siblings(shop, keep_id=keep_id)
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'repair active campaigns')

        self._commit('repair active campaigns')
        if repaired:
            logger.warning(f'Deactivated {repaired} extra active campaign(s) for {shop}')
        return repaired

    # ==================== INTERNALS ====================

    def _deactivate_siblings(self, shop: str, keep_id: int = None) -> int:
        query = self.session.query(Campaign).filter_by(shop=shop, is_active=True)
        if keep_id is not None:
            query = query.filter(Campaign.id != keep_id)
        return query.update(
            {'is_active': False, 'updated_at': datetime.utcnow()},
            synchronize_session='fetch'
        )

    def _activate(self, shop: str, write) -> Campaign:
        """Run an activation write in one transaction, retrying lost races."""
        attempts = max(1, self.activate_retries)
        for attempt in range(1, attempts + 1):
            try:
                campaign = write()
                self.session.commit()
                return campaign
            except IntegrityError as e:
                self.database.rollback()
                logger.warning(
                    f'Concurrent activation for {shop} (attempt {attempt}/{attempts}): {e.orig}'
                )
            except SQLAlchemyError as e:
                raise self._storage_error(e, 'activate campaign')
            except NotFoundError:
                self.database.rollback()
                raise

        raise StorageError(f'Could not activate campaign for {shop} after {attempts} attempts')

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error(e, action)

    def _storage_error(self, error: Exception, action: str) -> StorageError:
        self.database.handle_error(error)
        logger.error(f'Failed to {action}: {error}')
        return StorageError(f'Failed to {action}', original_error=error)
