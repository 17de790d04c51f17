"""
Shopify Admin API client.
Handles metafields, discount codes and billing status for Puzzle Craft.
"""
import logging
from datetime import datetime, timedelta
import httpx
from typing import Optional, Dict, Any, List

from ..utils.exceptions import ShopifyError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = '2025-01'


class ShopifyClient:
    """
    Client for Shopify Admin GraphQL API.

    Supports:
    - App installation and shop identity lookups
    - Metafield set/get/delete
    - Basic discount code create/lookup
    - Active app subscription checks

    Mutations return {'success': bool, ...} dicts; Shopify userErrors come back
    under 'errors'. Top-level GraphQL errors and transport failures raise
    ShopifyError from _execute_query.
    """

    def __init__(self, shop_domain: str, access_token: str = None, api_version: str = None):
        self.shop_domain = shop_domain.replace('https://', '').replace('http://', '').rstrip('/')
        self.access_token = access_token
        self.api_version = api_version or DEFAULT_API_VERSION
        self.graphql_url = f'https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json'

    def _execute_query(self, query: str, variables: Optional[Dict] = None) -> Dict[str, Any]:
        """Execute a GraphQL query."""
        headers = {
            'X-Shopify-Access-Token': self.access_token,
            'Content-Type': 'application/json'
        }

        payload = {'query': query}
        if variables:
            payload['variables'] = variables

        try:
            with httpx.Client() as client:
                response = client.post(
                    self.graphql_url,
                    headers=headers,
                    json=payload,
                    timeout=30.0
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPError as e:
            raise ShopifyError(f'Shopify request failed: {e}', original_error=e)
        except ValueError as e:
            raise ShopifyError(f'Invalid Shopify response: {e}', original_error=e)

        if not isinstance(result, dict):
            raise ShopifyError('Invalid Shopify response: expected a JSON object')

        if result.get('errors'):
            raise ShopifyError(f"GraphQL errors: {result['errors']}", errors=result['errors'])

        return result.get('data') or {}

    # ==================== IDENTITY ====================

    def get_app_installation_id(self) -> str:
        """GID of the current app installation (owner of app-scoped metafields)."""
        query = """
        query {
            currentAppInstallation {
                id
            }
        }
        """
        result = self._execute_query(query)
        installation_id = (result.get('currentAppInstallation') or {}).get('id')
        if not installation_id:
            raise ShopifyError('App installation id not returned')
        return installation_id

    def get_shop_id(self) -> str:
        """GID of the shop (owner of shop-scoped metafields)."""
        query = """
        query {
            shop {
                id
            }
        }
        """
        result = self._execute_query(query)
        shop_id = (result.get('shop') or {}).get('id')
        if not shop_id:
            raise ShopifyError('Shop id not returned')
        return shop_id

    # ==================== METAFIELDS ====================

    def set_metafields(self, metafields: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Set metafields in a single metafieldsSet call.

        Args:
            metafields: List of metafield dicts with:
                - ownerId: GID of the owning resource
                - namespace: string (e.g., 'puzzle_craft')
                - key: string (e.g., 'puzzlePieces')
                - value: string
                - type: string (e.g., 'single_line_text_field', 'number_integer')

        Returns:
            Dict with success status and any errors
        """
        mutation = """
        mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
            metafieldsSet(metafields: $metafields) {
                metafields {
                    id
                    namespace
                    key
                    value
                    type
                }
                userErrors {
                    field
                    message
                    code
                }
            }
        }
        """

        metafield_inputs = []
        for mf in metafields:
            metafield_inputs.append({
                'ownerId': mf['ownerId'],
                'namespace': mf['namespace'],
                'key': mf['key'],
                'value': str(mf['value']),
                'type': mf.get('type', 'single_line_text_field')
            })

        try:
            result = self._execute_query(mutation, {'metafields': metafield_inputs})
        except ShopifyError as e:
            return {'success': False, 'error': str(e)}

        mutation_result = result.get('metafieldsSet') or {}
        user_errors = mutation_result.get('userErrors', [])
        if user_errors:
            return {
                'success': False,
                'errors': user_errors
            }

        return {
            'success': True,
            'metafields': mutation_result.get('metafields') or []
        }

    def get_shop_metafield(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        """Get a shop-owned metafield, or None if it does not exist."""
        query = """
        query getShopMetafield($namespace: String!, $key: String!) {
            shop {
                id
                metafield(namespace: $namespace, key: $key) {
                    id
                    namespace
                    key
                    value
                    type
                }
            }
        }
        """
        result = self._execute_query(query, {'namespace': namespace, 'key': key})
        return (result.get('shop') or {}).get('metafield')

    def delete_metafields(self, identifiers: List[Dict[str, str]]) -> Dict[str, Any]:
        """
        Delete metafields by owner, namespace and key.

        Args:
            identifiers: List of {'ownerId', 'namespace', 'key'} dicts
        """
        mutation = """
        mutation metafieldsDelete($metafields: [MetafieldIdentifierInput!]!) {
            metafieldsDelete(metafields: $metafields) {
                deletedMetafields {
                    ownerId
                    namespace
                    key
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """
        try:
            result = self._execute_query(mutation, {'metafields': identifiers})
        except ShopifyError as e:
            return {'success': False, 'error': str(e)}

        data = result.get('metafieldsDelete') or {}
        errors = data.get('userErrors', [])
        if errors:
            return {
                'success': False,
                'errors': errors
            }

        return {
            'success': True,
            'deleted': data.get('deletedMetafields') or []
        }

    # ==================== DISCOUNTS ====================

    def create_discount_code(
        self,
        code: str,
        title: str,
        percentage: float,
        valid_days: int = 365
    ) -> Dict[str, Any]:
        """
        Create a basic percentage-off discount code for all customers.

        If Shopify reports the code as already taken, the existing discount
        is looked up and returned instead.

        Returns:
            Dict with discount details
        """
        mutation = """
        mutation discountCodeBasicCreate($basicCodeDiscount: DiscountCodeBasicInput!) {
            discountCodeBasicCreate(basicCodeDiscount: $basicCodeDiscount) {
                codeDiscountNode {
                    id
                    codeDiscount {
                        ... on DiscountCodeBasic {
                            title
                            status
                            startsAt
                            endsAt
                            codes(first: 1) {
                                nodes {
                                    code
                                }
                            }
                        }
                    }
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """

        starts_at = datetime.utcnow()
        ends_at = starts_at + timedelta(days=valid_days)

        variables = {
            'basicCodeDiscount': {
                'title': title,
                'code': code,
                'startsAt': starts_at.isoformat() + 'Z',
                'endsAt': ends_at.isoformat() + 'Z',
                'customerSelection': {
                    'all': True
                },
                'customerGets': {
                    'value': {
                        'percentage': percentage / 100
                    },
                    'items': {
                        'all': True
                    }
                },
                'usageLimit': None,
                'appliesOncePerCustomer': False
            }
        }

        try:
            result = self._execute_query(mutation, variables)
        except ShopifyError as e:
            return {'success': False, 'error': str(e)}

        data = result.get('discountCodeBasicCreate') or {}
        errors = data.get('userErrors', [])
        if errors:
            # If code already exists, adopt it
            if any('code' in str(e).lower() and 'taken' in str(e).lower() for e in errors):
                existing = self.get_discount_by_code(code)
                if existing.get('success'):
                    existing['adopted'] = True
                    return existing
            return {
                'success': False,
                'errors': errors
            }

        node = data.get('codeDiscountNode') or {}
        discount = node.get('codeDiscount') or {}
        codes = (discount.get('codes') or {}).get('nodes', [])

        return {
            'success': True,
            'discount_id': node.get('id'),
            'title': discount.get('title', title),
            'code': codes[0].get('code') if codes else code,
            'percentage': percentage,
            'starts_at': discount.get('startsAt'),
            'ends_at': discount.get('endsAt'),
        }

    def get_discount_by_code(self, code: str) -> Dict[str, Any]:
        """Get a discount by its code."""
        query = """
        query getDiscountByCode($code: String!) {
            codeDiscountNodeByCode(code: $code) {
                id
                codeDiscount {
                    ... on DiscountCodeBasic {
                        title
                        status
                        codes(first: 1) {
                            nodes {
                                code
                            }
                        }
                        customerGets {
                            value {
                                ... on DiscountPercentage {
                                    percentage
                                }
                            }
                        }
                    }
                }
            }
        }
        """

        try:
            result = self._execute_query(query, {'code': code})
        except ShopifyError as e:
            return {'success': False, 'error': str(e)}

        node = result.get('codeDiscountNodeByCode')
        if not node:
            return {'success': False, 'error': 'Discount not found'}

        discount = node.get('codeDiscount') or {}
        codes = (discount.get('codes') or {}).get('nodes', [])
        percentage_value = (discount.get('customerGets') or {}).get('value') or {}

        return {
            'success': True,
            'discount_id': node.get('id'),
            'title': discount.get('title'),
            'status': discount.get('status'),
            'code': codes[0].get('code') if codes else code,
            'percentage': round(percentage_value.get('percentage', 0) * 100)
        }

    def get_discount_node(self, discount_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a code discount node by GID.

        Returns None when Shopify answers with a null node. GraphQL errors
        (including "not found" errors for malformed or deleted ids) raise
        ShopifyError so the caller can classify them.
        """
        query = """
        query getDiscountNode($id: ID!) {
            codeDiscountNode(id: $id) {
                id
                codeDiscount {
                    ... on DiscountCodeBasic {
                        title
                        status
                    }
                }
            }
        }
        """
        result = self._execute_query(query, {'id': discount_id})
        return result.get('codeDiscountNode')

    # ==================== BILLING ====================

    def get_active_subscriptions(self) -> List[Dict[str, Any]]:
        """Active app subscriptions for the current installation."""
        query = """
        query {
            currentAppInstallation {
                activeSubscriptions {
                    id
                    name
                    status
                    test
                }
            }
        }
        """
        result = self._execute_query(query)
        installation = result.get('currentAppInstallation') or {}
        return installation.get('activeSubscriptions') or []


def get_shopify_client(shop) -> ShopifyClient:
    """
    Build a client for an installed shop.

    Args:
        shop: Shop model instance or shop domain

    Raises:
        ConfigurationError: If the shop has no stored access token
    """
    from flask import current_app
    from ..models.shop import Shop

    record = shop
    if isinstance(shop, str):
        record = Shop.query.filter_by(shop=shop).first()

    if not record or not record.access_token:
        domain = shop if isinstance(shop, str) else getattr(shop, 'shop', None)
        raise ConfigurationError(f'No Shopify access token stored for {domain}')

    return ShopifyClient(
        record.shop,
        record.access_token,
        api_version=current_app.config.get('SHOPIFY_API_VERSION')
    )
