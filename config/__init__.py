"""config package

Runtime settings (frozen dataclasses), YAML loading and the built-in chain table.
"""
