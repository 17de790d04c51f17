"""
Discount Code Registry for Puzzle Craft.

Per-shop set of tiered discount codes. The local rows are a cache of the
redeemable discounts that live in Shopify:

- Codes are issued in Shopify first (create_external) and recorded with
  their discount GID.
- list_valid() cross-checks every cached code against Shopify. A code is only
  evicted when Shopify confirms it no longer exists; any other failure keeps
  it (fail-open) so a flaky API never empties the storefront widget.
- If fewer than DISCOUNT_CACHE_REFRESH_THRESHOLD of the cached codes are
  confirmed live, the cache is rewritten to the confirmed subset. Smaller
  losses are treated as noise and the full cached set is returned unchanged.
"""
import logging
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import database as default_database
from ..models.discount_code import DiscountCode
from ..utils.cache import invalidate_storefront_codes
from ..utils.coercion import parse_bool, parse_int
from ..utils.exceptions import (
    ConfigurationError,
    DuplicateError,
    ExternalServiceError,
    NotFoundError,
    ShopifyError,
    StorageError,
    ValidationError,
)
from .tier_engine import TIER_ORDER, default_discount_codes, is_valid_tier, tier_rank

logger = logging.getLogger(__name__)

# GraphQL error messages that mean the discount is gone, not that the call failed
NOT_FOUND_PATTERNS = ('not found', 'does not exist', 'could not find', 'no such id')

UPDATABLE_FIELDS = ('code', 'title', 'tier', 'minScore', 'percentage', 'isActive')


def _to_int(value, field: str, label: str) -> int:
    if value is None or value == '':
        raise ValidationError(f'{label}: {field} is required', field)
    try:
        return parse_int(value)
    except ValueError:
        raise ValidationError(f'{label}: {field} must be a number', field)


def is_not_found_error(error: ShopifyError) -> bool:
    """True if Shopify's error says the discount does not exist."""
    messages = [str(e.get('message', e)) if isinstance(e, dict) else str(e) for e in error.errors]
    messages.append(error.message)
    text = ' '.join(messages).lower()
    return any(pattern in text for pattern in NOT_FOUND_PATTERNS)


class DiscountCodeRegistry:
    """
    Tiered discount codes for one or more shops.

    Usage:
        registry = DiscountCodeRegistry(shopify_client)
        result = registry.seed_defaults(shop)
        codes = registry.list_valid(shop)['valid_codes']
    """

    def __init__(self, shopify_client=None, database=None, refresh_threshold: float = None,
                 validity_days: int = None):
        self.shopify_client = shopify_client
        self.database = database or default_database
        self._refresh_threshold = refresh_threshold
        self._validity_days = validity_days

    @property
    def session(self):
        return self.database.session

    @property
    def client(self):
        if self.shopify_client is None:
            raise ConfigurationError('Discount code registry has no Shopify client')
        return self.shopify_client

    @property
    def refresh_threshold(self) -> float:
        if self._refresh_threshold is None:
            return current_app.config.get('DISCOUNT_CACHE_REFRESH_THRESHOLD', 0.5)
        return self._refresh_threshold

    @property
    def validity_days(self) -> int:
        if self._validity_days is None:
            return current_app.config.get('DISCOUNT_CODE_VALIDITY_DAYS', 365)
        return self._validity_days

    # ==================== VALIDATION ====================

    def validate_candidate(self, candidate: Dict[str, Any], label: str = 'Discount code') -> Dict[str, Any]:
        """Validate one wire-format code and return normalized values."""
        if not isinstance(candidate, dict):
            raise ValidationError(f'{label}: must be an object')

        code = str(candidate.get('code') or '').strip().upper()
        if not code:
            raise ValidationError(f'{label}: code is required', 'code')

        title = str(candidate.get('title') or '').strip()
        if not title:
            raise ValidationError(f'{label}: title is required', 'title')

        tier = str(candidate.get('tier') or '').strip().lower()
        if not is_valid_tier(tier):
            raise ValidationError(f'{label}: tier must be one of {", ".join(TIER_ORDER)}', 'tier')

        percentage = _to_int(candidate.get('percentage'), 'percentage', label)
        if not 1 <= percentage <= 100:
            raise ValidationError(f'{label}: percentage must be between 1 and 100', 'percentage')

        min_score = _to_int(candidate.get('minScore'), 'minScore', label)
        if not 0 <= min_score <= 100:
            raise ValidationError(f'{label}: minScore must be between 0 and 100', 'minScore')

        return {
            'code': code,
            'title': title,
            'tier': tier,
            'percentage': percentage,
            'min_score': min_score,
        }

    def validate_candidates(self, candidates) -> List[Dict[str, Any]]:
        """
        Validate a whole batch. Any invalid code rejects the batch.

        Raises:
            ValidationError: for the first invalid code
        """
        if not isinstance(candidates, list) or not candidates:
            raise ValidationError('At least one discount code is required', 'discountCodes')

        normalized = []
        seen = set()
        for index, candidate in enumerate(candidates, start=1):
            values = self.validate_candidate(candidate, f'Discount code #{index}')
            if values['code'] in seen:
                raise ValidationError(f'Discount code #{index}: duplicate code {values["code"]}', 'code')
            seen.add(values['code'])
            normalized.append(values)
        return normalized

    # ==================== READS ====================

    def list(self, shop: str) -> List[DiscountCode]:
        """All codes for the shop, lowest tier first."""
        try:
            codes = self.session.query(DiscountCode).filter_by(shop=shop).all()
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'list discount codes')
        return sorted(codes, key=lambda c: (tier_rank(c.tier), c.min_score, c.code))

    def get(self, code_id: int, shop: str) -> DiscountCode:
        try:
            code = self.session.query(DiscountCode).filter_by(id=code_id, shop=shop).first()
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'load discount code')
        if not code:
            raise NotFoundError('Discount code', code_id)
        return code

    def _cached(self, shop: str) -> List[DiscountCode]:
        return [code for code in self.list(shop) if code.is_active]

    def is_live(self, code: DiscountCode) -> bool:
        """
        Check a single code against Shopify.

        Never-issued codes are not live. A present node is live, a null node
        or a "not found" error is not, and any other failure is treated as
        live.
        """
        if not code.shopify_id:
            return False

        try:
            node = self.client.get_discount_node(code.shopify_id)
        except ShopifyError as e:
            if is_not_found_error(e):
                logger.info(f'Discount {code.code} no longer exists in Shopify')
                return False
            logger.warning(f'Could not validate discount {code.code}, assuming it still exists: {e}')
            return True

        return bool(node)

    def list_valid(self, shop: str) -> Dict[str, Any]:
        """
        Cached codes cross-checked against Shopify.

        Returns:
            Dict with valid_codes (DiscountCode rows), needs_update and checked
        """
        cached = self._cached(shop)
        if not cached:
            return {'valid_codes': [], 'needs_update': False, 'checked': 0}

        live = [code for code in cached if self.is_live(code)]
        needs_update = len(live) < len(cached) * self.refresh_threshold

        if not needs_update:
            return {'valid_codes': cached, 'needs_update': False, 'checked': len(cached)}

        live_ids = {code.id for code in live}
        evicted = [code for code in cached if code.id not in live_ids]
        logger.warning(
            f'Only {len(live)}/{len(cached)} discount codes still exist for {shop}, '
            f'evicting {", ".join(code.code for code in evicted)}'
        )

        try:
            for code in evicted:
                self.session.delete(code)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error(e, 'rewrite discount code cache')

        invalidate_storefront_codes(shop)
        return {'valid_codes': live, 'needs_update': True, 'checked': len(cached)}

    def code_for_tier(self, shop: str, tier: str) -> Optional[DiscountCode]:
        """
        The active code for a tier.

        Falls back to the best code of a lower tier when the shop has none
        for the exact tier.
        """
        candidates = self.codes_for_tier(shop, tier)
        return candidates[0] if candidates else None

    def codes_for_tier(self, shop: str, tier: str) -> List[DiscountCode]:
        """Active codes at or below a tier, best first."""
        rank = tier_rank(tier)
        candidates = [code for code in self._cached(shop) if 0 <= tier_rank(code.tier) <= rank]
        return sorted(candidates, key=lambda c: (tier_rank(c.tier), c.percentage), reverse=True)

    def live_code_for_tier(self, shop: str, tier: str) -> Optional[DiscountCode]:
        """
        The best code at or below a tier that Shopify still honours.

        Candidates are checked best first, so a deleted silver code falls
        back to a live bronze one.
        """
        for code in self.codes_for_tier(shop, tier):
            if self.is_live(code):
                return code
        return None

    # ==================== WRITES ====================

    def seed_defaults(self, shop: str, candidates: List[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Issue the shop's starting set of codes.

        Returns early with alreadyExists if the shop already has valid codes.
        Validation is all-or-nothing; issuance in Shopify is best-effort per
        code.

        Args:
            shop: Shop domain
            candidates: Wire-format codes; None means the default seeds
        """
        existing = self.list_valid(shop)['valid_codes']
        if existing:
            logger.info(f'{len(existing)} valid discount codes already exist for {shop}')
            return {
                'success': True,
                'alreadyExists': True,
                'created': 0,
                'total': len(existing),
                'discounts': [code.to_dict() for code in existing],
                'failures': [],
            }

        if candidates is None:
            candidates = default_discount_codes()
        normalized = self.validate_candidates(candidates)

        results = [self.create_external(shop, values) for values in normalized]
        created = [r for r in results if r['success']]
        failures = [r for r in results if not r['success']]

        if failures:
            logger.warning(
                f'Created {len(created)}/{len(results)} discount codes for {shop}; '
                f'failed: {", ".join(r["code"] for r in failures)}'
            )
        else:
            logger.info(f'Created {len(created)} discount codes for {shop}')

        invalidate_storefront_codes(shop)
        return {
            'success': bool(created),
            'alreadyExists': False,
            'created': len(created),
            'total': len(results),
            'discounts': [r['discount'] for r in created],
            'failures': failures,
        }

    def create_external(self, shop: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Issue one validated code in Shopify and record it locally.

        Never raises for Shopify or storage failures; the result dict says
        whether this code made it.
        """
        code = values['code']
        result = self.client.create_discount_code(
            code,
            values['title'],
            values['percentage'],
            valid_days=self.validity_days
        )

        if not result.get('success'):
            errors = result.get('errors') or [{'message': result.get('error', 'Unknown error')}]
            logger.warning(f'Shopify rejected discount {code} for {shop}: {errors}')
            return {'success': False, 'code': code, 'errors': errors}

        try:
            record = self._record(shop, values, result.get('discount_id'))
        except StorageError as e:
            return {'success': False, 'code': code, 'errors': [{'message': e.message}]}

        return {
            'success': True,
            'code': code,
            'adopted': bool(result.get('adopted')),
            'discount': record.to_dict(),
        }

    def create(self, shop: str, fields: Dict[str, Any]) -> DiscountCode:
        """
        Create a single code from the admin.

        Raises:
            ValidationError, DuplicateError, ExternalServiceError
        """
        values = self.validate_candidate(fields)
        if self.session.query(DiscountCode).filter_by(shop=shop, code=values['code']).first():
            raise DuplicateError('Discount code', values['code'])

        result = self.client.create_discount_code(
            values['code'],
            values['title'],
            values['percentage'],
            valid_days=self.validity_days
        )
        if not result.get('success'):
            errors = result.get('errors') or result.get('error')
            raise ExternalServiceError(
                f'Shopify rejected discount {values["code"]}: {errors}',
                service='shopify',
                details=errors
            )

        record = self._record(shop, values, result.get('discount_id'))
        invalidate_storefront_codes(shop)
        return record

    def update(self, code_id: int, shop: str, fields: Dict[str, Any]) -> DiscountCode:
        """Edit one code's fields."""
        code = self.get(code_id, shop)
        merged = code.to_dict()
        for key in UPDATABLE_FIELDS:
            if key in fields:
                merged[key] = fields[key]

        values = self.validate_candidate(merged)
        is_active = code.is_active
        if 'isActive' in fields:
            try:
                is_active = parse_bool(fields['isActive'])
            except ValueError:
                raise ValidationError('isActive must be true or false', 'isActive')

        if values['code'] != code.code:
            clash = self.session.query(DiscountCode).filter_by(shop=shop, code=values['code']).first()
            if clash:
                raise DuplicateError('Discount code', values['code'])

        code.code = values['code']
        code.title = values['title']
        code.tier = values['tier']
        code.percentage = values['percentage']
        code.min_score = values['min_score']
        code.is_active = is_active

        self._commit('update discount code')
        invalidate_storefront_codes(shop)
        return code

    def delete(self, code_id: int, shop: str) -> None:
        code = self.get(code_id, shop)
        self.session.delete(code)
        self._commit('delete discount code')
        invalidate_storefront_codes(shop)

    # ==================== INTERNALS ====================

    def _record(self, shop: str, values: Dict[str, Any], discount_id: str) -> DiscountCode:
        """Insert or refresh the local row for an issued code."""
        try:
            record = self.session.query(DiscountCode).filter_by(shop=shop, code=values['code']).first()
            if not record:
                record = DiscountCode(shop=shop, code=values['code'])
                self.session.add(record)
            record.title = values['title']
            record.tier = values['tier']
            record.percentage = values['percentage']
            record.min_score = values['min_score']
            record.shopify_id = discount_id
            record.is_active = True
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error(e, f'record discount code {values["code"]}')
        return record

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._storage_error(e, action)

    def _storage_error(self, error: Exception, action: str) -> StorageError:
        self.database.handle_error(error)
        logger.error(f'Failed to {action}: {error}')
        return StorageError(f'Failed to {action}', original_error=error)
