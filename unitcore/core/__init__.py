"""
Core algebra of units and dimensions.

This package contains the building blocks that do not depend on any
particular set of declared units: atoms and canonical composites, the
conversion factor synthesizer, quantity arithmetic and temperature kinds.
"""
