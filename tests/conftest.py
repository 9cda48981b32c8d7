import pytest
from weft import Kernel, ManualClock
from weft.debug import logcrash

@pytest.fixture(scope='function')
def manual_clock():
    return ManualClock()

# Every test gets a fresh kernel running on virtual time.  Sleeping
# costs nothing and schedules are reproducible.
@pytest.fixture(scope='function')
def kernel(request, manual_clock):
    k = Kernel(clock=manual_clock, debug=[logcrash])
    request.addfinalizer(k.shutdown)
    return k
