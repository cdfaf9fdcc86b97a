"""
modchain — core.utils
---------------------

Small stdlib-only helpers shared across packages. Prefer module-qualified
access (`from core.utils import hash as hash_utils`) since `hash` shadows a
builtin.
"""
