import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    from commerce.pricing.coupons import reset_coupon_resolver
    from commerce.utils import clock
    from commerce.utils.db import reset_data
    from protean import current_domain

    with commerce_bed.domain_context():
        yield

        reset_data(current_domain)

    reset_coupon_resolver()
    clock.reset_clock()
