"""
Rendering of VM class names the way JaCoCo reports present them.
"""

import unicodedata
from typing import List, Optional

DEFAULT_PACKAGE = "default"


def _is_java_identifier_start(char: str) -> bool:
    return char.isidentifier() or char == '$' or unicodedata.category(char) in ('Sc', 'Pc')


def _simple_name(vm_name: str) -> str:
    name = vm_name[vm_name.rfind('/') + 1:]
    return name.replace('$', '.')


def _is_anonymous(vm_name: str) -> bool:
    dollar = vm_name.rfind('$')
    if dollar == -1 or dollar + 1 == len(vm_name):
        return False
    return not _is_java_identifier_start(vm_name[dollar + 1])


def package_name(vm_package: str) -> str:
    """Dotted package name, or "default" for the unnamed package."""
    if not vm_package:
        return DEFAULT_PACKAGE
    return vm_package.replace('/', '.')


def class_name(vm_name: str, signature: Optional[str], super_name: Optional[str],
               interfaces: Optional[List[str]]) -> str:
    """
    Class name without package.

    Nested classes are joined with dots. Anonymous classes get an Eclipse
    style label built from their first interface or their superclass, e.g.
    ``Foo.new Runnable() {...}``. The generic signature does not change the
    rendered name.
    """
    if _is_anonymous(vm_name):
        if interfaces:
            super_type = interfaces[0]
        else:
            super_type = super_name
        if super_type is not None:
            enclosing = vm_name[:vm_name.rfind('$')]
            return f"{_simple_name(enclosing)}.new {_simple_name(super_type)}() {{...}}"
    return _simple_name(vm_name)


def qualified_name(vm_name: str, signature: Optional[str], super_name: Optional[str],
                   interfaces: Optional[List[str]]) -> str:
    """Fully qualified name; classes in the default package have no prefix."""
    pos = vm_name.rfind('/')
    package = package_name(vm_name[:pos] if pos != -1 else "")
    name = class_name(vm_name, signature, super_name, interfaces)
    if package == DEFAULT_PACKAGE:
        return name
    return f"{package}.{name}"
