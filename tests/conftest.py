from pytest import fixture

from mvctest.config import Settings
from mvctest.report import Scribe

from utils import DemoTestCase


@fixture
def case():
    """A demo test case, set up as unittest would do before a test."""
    instance = DemoTestCase()
    instance.settings = Settings()
    instance.scribe = Scribe()
    instance.setUp()
    yield instance
    instance.tearDown()
