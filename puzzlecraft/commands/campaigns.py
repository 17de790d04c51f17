"""
CLI Commands for campaign maintenance.

# Repair shops left with more than one active campaign
flask campaigns repair
flask campaigns repair --shop=store.myshopify.com

# Republish campaign, discount code and subscription metafields
flask campaigns sync --shop=store.myshopify.com
"""

import click
from flask.cli import with_appcontext
from ..extensions import db
from ..models import Campaign, Shop
from ..services.campaign_store import CampaignStore
from ..services.metafield_sync import MetafieldSync
from ..services.shopify_client import get_shopify_client
from ..utils.exceptions import PuzzleCraftError


@click.group('campaigns')
def campaigns_cli():
    """Campaign maintenance commands."""
    pass


@campaigns_cli.command('repair')
@click.option('--shop', help='Specific shop domain (or all if not specified)')
@with_appcontext
def repair_active_campaigns(shop):
    """
    Deactivate all but the newest active campaign per shop.
    """
    store = CampaignStore()

    if shop:
        shops = [shop]
    else:
        shops = [
            row.shop for row in
            db.session.query(Campaign.shop).filter_by(is_active=True).distinct().all()
        ]

    total = 0
    for shop_domain in shops:
        try:
            repaired = store.repair_active(shop_domain)
        except PuzzleCraftError as e:
            click.echo(f"  {shop_domain}: repair failed ({e.message})")
            continue
        if repaired:
            click.echo(f"  {shop_domain}: deactivated {repaired} campaign(s)")
        total += repaired

    click.echo(f"\nChecked {len(shops)} shop(s), deactivated {total} campaign(s)")


@campaigns_cli.command('sync')
@click.option('--shop', required=True, help='Shop domain to sync')
@with_appcontext
def sync_shop(shop):
    """
    Publish every storefront metafield for one shop.
    """
    shop_record = Shop.query.filter_by(shop=shop).first()
    if not shop_record:
        click.echo(f"Shop {shop} not found")
        raise SystemExit(1)

    try:
        report = MetafieldSync(get_shopify_client(shop_record)).sync_all(shop)
    except PuzzleCraftError as e:
        click.echo(f"Sync failed: {e.message}")
        raise SystemExit(1)

    for step in ('campaign', 'discountCodes', 'subscription'):
        if step in report:
            result = report[step]
            state = 'ok' if result.get('success') else f"failed ({result.get('errors') or result.get('error')})"
            click.echo(f"  {step}: {state}")

    click.echo(f"\nSubscription active: {report['subscriptionActive']}")
    if not report['success']:
        raise SystemExit(1)


def init_app(app):
    """Register campaign commands with Flask app."""
    app.cli.add_command(campaigns_cli)
