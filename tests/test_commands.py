"""
Tests for the campaign CLI commands.
"""
from unittest.mock import patch
from sqlalchemy import text

from puzzlecraft.extensions import db
from puzzlecraft.models import Campaign


class TestRepairCommand:
    """Tests for `flask campaigns repair`."""

    def test_repairs_duplicate_actives(self, app):
        with app.app_context():
            db.session.execute(text('DROP INDEX uq_campaigns_one_active_per_shop'))
            for name in ('One', 'Two', 'Three'):
                db.session.add(Campaign(shop='cli.myshopify.com', name=name,
                                        image_url='https://x/p.png', is_active=True))
                db.session.commit()

        result = app.test_cli_runner().invoke(args=['campaigns', 'repair'])

        assert result.exit_code == 0
        assert 'deactivated 2 campaign(s)' in result.output
        with app.app_context():
            assert Campaign.query.filter_by(shop='cli.myshopify.com', is_active=True).count() == 1

    def test_nothing_to_repair(self, app):
        result = app.test_cli_runner().invoke(args=['campaigns', 'repair'])
        assert 'Checked 0 shop(s), deactivated 0 campaign(s)' in result.output


class TestSyncCommand:
    """Tests for `flask campaigns sync`."""

    def test_unknown_shop(self, app):
        result = app.test_cli_runner().invoke(args=['campaigns', 'sync', '--shop', 'nope.myshopify.com'])
        assert result.exit_code == 1

    def test_sync(self, app, installed_shop, mock_shopify):
        with patch('puzzlecraft.commands.campaigns.get_shopify_client', return_value=mock_shopify):
            result = app.test_cli_runner().invoke(args=['campaigns', 'sync', '--shop', installed_shop])

        assert result.exit_code == 0
        assert 'campaign: ok' in result.output
        assert 'Subscription active: True' in result.output
