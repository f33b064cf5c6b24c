"""auth/ -- Access password validation and platform key exchange for gBridge.

Layer rule: auth/ imports from core/ and third-party libraries only.
It does NOT import from devices/.
"""
