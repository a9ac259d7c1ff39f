"""Create profit ledger tables

Revision ID: a1f3c9d2e4b7
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers
revision: str = 'a1f3c9d2e4b7'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(table_name):
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    # ── clients / cost settings ──
    if not _has_table('clients'):
        op.create_table(
            'clients',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if not _has_table('client_cost_settings'):
        op.create_table(
            'client_cost_settings',
            sa.Column('client_id', sa.String(), primary_key=True),
            sa.Column('default_gross_margin_pct', sa.Float(), nullable=True),
            sa.Column('avg_cogs_per_unit', sa.Float(), nullable=True),
            sa.Column('processing_fee_pct', sa.Float(), nullable=True),
            sa.Column('processing_fee_fixed', sa.Float(), nullable=True),
            sa.Column('pick_pack_per_order', sa.Float(), nullable=True),
            sa.Column('shipping_subsidy_per_order', sa.Float(), nullable=True),
            sa.Column('materials_per_order', sa.Float(), nullable=True),
            sa.Column('other_variable_pct_revenue', sa.Float(), nullable=True),
            sa.Column('other_fixed_per_day', sa.Float(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        )

    # ── raw upstream metrics ──
    if not _has_table('daily_metrics'):
        op.create_table(
            'daily_metrics',
            sa.Column('client_id', sa.String(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('source', sa.String(), nullable=False),
            sa.Column('spend', sa.Float(), server_default='0'),
            sa.Column('revenue', sa.Float(), server_default='0'),
            sa.Column('orders', sa.Float(), server_default='0'),
            sa.Column('units', sa.Float(), server_default='0'),
            sa.Column('clicks', sa.Float(), server_default='0'),
            sa.Column('impressions', sa.Float(), server_default='0'),
            sa.Column('conversions', sa.Float(), server_default='0'),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
            sa.PrimaryKeyConstraint('client_id', 'date', 'source'),
        )

    if not _has_table('shopify_daily_line_items'):
        op.create_table(
            'shopify_daily_line_items',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('client_id', sa.String(), nullable=False, index=True),
            sa.Column('day', sa.Date(), nullable=False, index=True),
            sa.Column('variant_id', sa.BigInteger(), nullable=True),
            sa.Column('inventory_item_id', sa.BigInteger(), nullable=True),
            sa.Column('units', sa.Float(), server_default='0'),
            sa.Column('line_revenue', sa.Float(), server_default='0'),
        )

    if not _has_table('variant_unit_costs'):
        op.create_table(
            'variant_unit_costs',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('client_id', sa.String(), nullable=False, index=True),
            sa.Column('inventory_item_id', sa.BigInteger(), nullable=True),
            sa.Column('variant_id', sa.BigInteger(), nullable=True, index=True),
            sa.Column('unit_cost_amount', sa.Float(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
            sa.UniqueConstraint('client_id', 'inventory_item_id', name='uq_unit_cost_inventory_item'),
        )

    if not _has_table('daily_cogs_coverage'):
        op.create_table(
            'daily_cogs_coverage',
            sa.Column('client_id', sa.String(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('product_cogs_known', sa.Float(), server_default='0'),
            sa.Column('revenue_with_cogs', sa.Float(), server_default='0'),
            sa.Column('units_with_cogs', sa.Float(), server_default='0'),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
            sa.PrimaryKeyConstraint('client_id', 'date'),
        )

    # ── derived ledger ──
    if not _has_table('daily_profit_summary'):
        op.create_table(
            'daily_profit_summary',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('client_id', sa.String(), nullable=False, index=True),
            sa.Column('date', sa.Date(), nullable=False, index=True),
            sa.Column('revenue', sa.Float(), server_default='0'),
            sa.Column('orders', sa.Float(), server_default='0'),
            sa.Column('units', sa.Float(), server_default='0'),
            sa.Column('paid_spend', sa.Float(), server_default='0'),
            sa.Column('mer', sa.Float(), server_default='0'),
            sa.Column('est_cogs', sa.Float(), server_default='0'),
            sa.Column('est_processing_fees', sa.Float(), server_default='0'),
            sa.Column('est_fulfillment_costs', sa.Float(), server_default='0'),
            sa.Column('est_other_variable_costs', sa.Float(), server_default='0'),
            sa.Column('est_other_fixed_costs', sa.Float(), server_default='0'),
            sa.Column('contribution_profit', sa.Float(), server_default='0'),
            sa.Column('profit_mer', sa.Float(), server_default='0'),
            sa.Column('product_cogs_known', sa.Float(), server_default='0'),
            sa.Column('revenue_with_cogs', sa.Float(), server_default='0'),
            sa.Column('units_with_cogs', sa.Float(), server_default='0'),
            sa.Column('cogs_coverage_pct', sa.Float(), server_default='0'),
            sa.Column('cost_mode', sa.String(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
            sa.UniqueConstraint('client_id', 'date', name='uq_daily_profit_client_date'),
        )

    if not _has_table('monthly_rollup'):
        op.create_table(
            'monthly_rollup',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('client_id', sa.String(), nullable=False, index=True),
            sa.Column('month', sa.Date(), nullable=False, index=True),
            sa.Column('days_count', sa.Integer(), server_default='0'),
            sa.Column('shopify_revenue', sa.Float(), server_default='0'),
            sa.Column('shopify_orders', sa.Float(), server_default='0'),
            sa.Column('shopify_units', sa.Float(), server_default='0'),
            sa.Column('meta_spend', sa.Float(), server_default='0'),
            sa.Column('google_spend', sa.Float(), server_default='0'),
            sa.Column('total_ad_spend', sa.Float(), server_default='0'),
            sa.Column('true_roas', sa.Float(), server_default='0'),
            sa.Column('aov', sa.Float(), server_default='0'),
            sa.Column('cpo', sa.Float(), server_default='0'),
            sa.Column('est_cogs', sa.Float(), server_default='0'),
            sa.Column('est_processing_fees', sa.Float(), server_default='0'),
            sa.Column('est_fulfillment_costs', sa.Float(), server_default='0'),
            sa.Column('est_other_variable_costs', sa.Float(), server_default='0'),
            sa.Column('est_other_fixed_costs', sa.Float(), server_default='0'),
            sa.Column('contribution_profit', sa.Float(), server_default='0'),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
            sa.UniqueConstraint('client_id', 'month', name='uq_monthly_rollup_client_month'),
        )

    if not _has_table('rollup_runs'):
        op.create_table(
            'rollup_runs',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('client_scope', sa.String(), nullable=True),
            sa.Column('window_start', sa.Date(), nullable=True),
            sa.Column('window_end', sa.Date(), nullable=True),
            sa.Column('fill_zeros', sa.Boolean(), server_default='0'),
            sa.Column('force', sa.Boolean(), server_default='0'),
            sa.Column('status', sa.String(), index=True),
            sa.Column('clients_processed', sa.Integer(), server_default='0'),
            sa.Column('rows_upserted', sa.Integer(), server_default='0'),
            sa.Column('rows_suppressed', sa.Integer(), server_default='0'),
            sa.Column('months_upserted', sa.Integer(), server_default='0'),
            sa.Column('errors', sa.JSON(), nullable=True),
            sa.Column('started_at', sa.DateTime(), server_default=sa.func.now(), index=True),
            sa.Column('duration_seconds', sa.Float(), nullable=True),
        )


def downgrade() -> None:
    for table_name in (
        'rollup_runs',
        'monthly_rollup',
        'daily_profit_summary',
        'daily_cogs_coverage',
        'variant_unit_costs',
        'shopify_daily_line_items',
        'daily_metrics',
        'client_cost_settings',
        'clients',
    ):
        if _has_table(table_name):
            op.drop_table(table_name)
