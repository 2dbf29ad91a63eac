import os
import sys
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from service_pricing.engine import ServicePricingEngine
from service_pricing.engine.models import (
    CalculationStrategy,
    LineItem,
    ServiceOption,
    ServiceOptionComponent,
    ServicePackage,
    ServicePackageItem,
)
from service_pricing.store import InMemoryCatalogStore


def make_line_items():
    return [
        LineItem(id='li-paint', name='Interior Paint', price=Decimal('45'), unit='gallon', category_tag='material'),
        LineItem(id='li-paint-premium', name='Premium Paint', price=Decimal('68'), unit='gallon', category_tag='material'),
        LineItem(id='li-labor', name='Painter Labor', price=Decimal('60'), unit='hour', category_tag='labor'),
        LineItem(id='li-primer', name='Premium Primer', price=Decimal('80'), unit='each', category_tag='Material'),
        LineItem(id='li-sprayer', name='Sprayer Rental', price=Decimal('95'), unit='day', category_tag='equipment'),
        LineItem(id='li-haul', name='Debris Haul-Away', price=Decimal('30'), unit='load', category_tag='disposal'),
        LineItem(id='li-a', name='Option A Bundle', price=Decimal('200'), unit='each', category_tag='service'),
        LineItem(id='li-b', name='Option B Bundle', price=Decimal('50'), unit='each', category_tag='service'),
    ]


def make_options():
    paint = ServiceOption(
        id='opt-paint',
        name='Standard Paint Job',
        unit='sqft',
        base_components=(
            ServiceOptionComponent(
                id='paint', line_item_ref='li-paint', quantity=Decimal('1'),
                strategy=CalculationStrategy.COVERAGE, coverage_amount=Decimal('350'),
                coverage_unit='sqft_per_gallon', display_order=1,
            ),
            ServiceOptionComponent(
                id='labor', line_item_ref='li-labor', quantity=Decimal('0.05'),
                strategy=CalculationStrategy.PER_UNIT, display_order=2,
            ),
        ),
    )
    option_a = ServiceOption(
        id='opt-a', name='Option A', unit='each',
        base_components=(
            ServiceOptionComponent(id='a1', line_item_ref='li-a', quantity=Decimal('1'), strategy=CalculationStrategy.FIXED),
        ),
    )
    option_b = ServiceOption(
        id='opt-b', name='Option B', unit='each',
        base_components=(
            ServiceOptionComponent(id='b1', line_item_ref='li-b', quantity=Decimal('1'), strategy=CalculationStrategy.FIXED),
        ),
    )
    return [paint, option_a, option_b]


def make_packages():
    return [
        ServicePackage(
            id='pkg-c', name='Scenario C', level='complete',
            items=(
                ServicePackageItem(service_option_ref='opt-a', quantity=Decimal('1')),
                ServicePackageItem(service_option_ref='opt-b', quantity=Decimal('2'), is_optional=True),
            ),
        ),
        ServicePackage(
            id='pkg-basic', name='Basic', level='essentials',
            items=(ServicePackageItem(service_option_ref='opt-b', quantity=Decimal('1')),),
        ),
        ServicePackage(
            id='pkg-deluxe', name='Deluxe', level='deluxe',
            items=(
                ServicePackageItem(service_option_ref='opt-a', quantity=Decimal('2')),
                ServicePackageItem(service_option_ref='opt-b', quantity=Decimal('1'), is_optional=True, is_upgrade=True),
                ServicePackageItem(service_option_ref='opt-b', quantity=Decimal('3'), is_upgrade=True),
            ),
        ),
    ]


@pytest.fixture
def line_items():
    return {li.id: li for li in make_line_items()}


@pytest.fixture
def store():
    return InMemoryCatalogStore(
        line_items=make_line_items(),
        options=make_options(),
        packages=make_packages(),
    )


@pytest.fixture
def engine(store):
    return ServicePricingEngine(store)


@pytest.fixture
def paint_option(store):
    return store.fetch_base_option('opt-paint')
