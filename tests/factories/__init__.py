"""
Factory Boy Factories for the Brokerage Portal

Import all factories here for easy access in tests.
"""
from tests.factories.core import (
    OptionFactory,
    SessionUserFactory,
)
from tests.factories.deals import (
    AdditionalAgentFactory,
    DealFormDataFactory,
    DealRecordFactory,
)

__all__ = [
    # Core
    'OptionFactory',
    'SessionUserFactory',
    # Deals
    'AdditionalAgentFactory',
    'DealFormDataFactory',
    'DealRecordFactory',
]
