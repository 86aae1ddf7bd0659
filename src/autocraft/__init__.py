"""
autocraft: reroll-and-inspect crafting automation core.
"""
__version__ = "0.1.0"
