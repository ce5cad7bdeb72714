"""GNU ld linker script serializer.

Renders a MemoryLayout as a linker script (MEMORY + SECTIONS blocks) and a
small C file that performs the boot-time copy of every boot-copy section and
zeroes every bss section. The glue is emitted into its own input section,
collected right after the vector table, so it never depends on code that is
itself copied at boot.

Every output section .<name> exports __<name>_start__ and __<name>_end__ at
its VMA. Boot-copy sections additionally export __<name>_load__, the LMA of
their initial contents.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from overrides import override  # type: ignore

from ldscript.core.capabilities import Access
from ldscript.core.exceptions import ConfigurationError
from ldscript.core.sections import Section, SectionKind
from ldscript.gnu.consts import (
    COPY_STATEMENT,
    DEFAULT_ENTRY,
    DEFAULT_SCRIPT_NAME,
    DEFAULT_STARTUP_NAME,
    KEEP_KINDS,
    KIND_INPUTS,
    MEMORY_LINE,
    SCRIPT_TEMPLATE,
    SECTION_TEMPLATE,
    SIZE_ASSERT,
    STACK_ALIGNMENT,
    STARTUP_FUNCTION,
    STARTUP_SECTION,
    STARTUP_TEMPLATE,
    ZERO_STATEMENT,
)
from ldscript.interfaces.serializer import LayoutSerializer
from ldscript.utils.consts import ConstUtils, format_address, format_size

if TYPE_CHECKING:
    from ldscript.core.layout import MemoryLayout

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_INDENT = " " * 8


class GnuLdSerializer(LayoutSerializer):
    """Linker script + startup glue for GNU ld (and lld)."""

    def __init__(
        self,
        entry: str = DEFAULT_ENTRY,
        script_name: str = DEFAULT_SCRIPT_NAME,
        startup_name: str = DEFAULT_STARTUP_NAME,
        emit_startup: bool = True,
    ) -> None:
        self.entry = entry
        self.script_name = script_name
        self.startup_name = startup_name
        self.emit_startup = emit_startup

    @override
    def render(self, layout: "MemoryLayout") -> dict[str, str]:
        """Render the linker script and, if enabled, the startup glue."""
        self._check_identifiers(layout)

        files = {self.script_name: self.render_script(layout)}
        if self.emit_startup:
            files[self.startup_name] = self.render_startup(layout)
        return files

    def render_script(self, layout: "MemoryLayout") -> str:
        memory = "\n".join(
            MEMORY_LINE.substitute(
                name=region.name,
                attributes=region.kind.linker_attributes,
                origin=format_address(region.base),
                length=format_address(region.size),
            )
            for region in layout.regions
        )

        sections = layout.ordered_sections()
        blocks = [self._render_section(section) for section in sections]
        if self.emit_startup:
            home = self._startup_home(layout)
            # Right after the (first) vector table, in the same region
            blocks.insert(
                sections.index(home) + 1,
                SECTION_TEMPLATE.substitute(
                    name=STARTUP_SECTION[1:],
                    address="",
                    type="",
                    body=f"{_INDENT}. = ALIGN({ConstUtils.SECTION_ALIGNMENT});\n"
                    f"{_INDENT}KEEP(*({STARTUP_SECTION}))",
                    placement=f"> {home.vma.name}",
                ),
            )
        stack_top = self._stack_top(sections)
        if stack_top:
            blocks.append(stack_top)

        asserts = "".join(
            SIZE_ASSERT.substitute(
                name=section.name,
                size=f"0x{section.size:X}",
                pretty=format_size(section.size),
            )
            + "\n"
            for section in sections
            if section.size is not None and section.kind is not SectionKind.STACK
        )
        if asserts:
            asserts = "\n" + asserts

        return SCRIPT_TEMPLATE.substitute(
            layout=layout.name,
            entry=self.entry,
            memory=memory,
            sections="\n\n".join(blocks),
            asserts=asserts,
        )

    def render_startup(self, layout: "MemoryLayout") -> str:
        sections = layout.ordered_sections()
        copied = [s for s in sections if s.is_boot_copy and not s.kind.is_zero_fill]
        zeroed = [s for s in sections if s.kind is SectionKind.BSS]

        externs: list[str] = []
        statements: list[str] = []
        for section in copied:
            externs.extend(self._externs(section, ("start", "end", "load")))
            statements.append(COPY_STATEMENT.substitute(name=section.name))
        for section in zeroed:
            externs.extend(self._externs(section, ("start", "end")))
            statements.append(ZERO_STATEMENT.substitute(name=section.name))

        return STARTUP_TEMPLATE.substitute(
            layout=layout.name,
            function=STARTUP_FUNCTION,
            section=STARTUP_SECTION,
            externs="\n".join(externs) if externs else "/* no boot-copy or bss sections */",
            statements="\n".join(statements) if statements else "    /* nothing to do */",
        )

    # ------------------------------------------------------------------

    def _render_section(self, section: Section) -> str:
        name = section.name
        align = STACK_ALIGNMENT if section.kind is SectionKind.STACK else ConstUtils.SECTION_ALIGNMENT

        body = [f". = ALIGN({align});", f"__{name}_start__ = .;"]
        if section.kind is SectionKind.STACK:
            body.append(f". = . + 0x{section.size:X};")
        else:
            body.extend(self._inputs(section))
        body.extend([f". = ALIGN({align});", f"__{name}_end__ = .;"])

        address = ""
        if section.offset is not None:
            address = f" ORIGIN({section.vma.name}) + 0x{section.offset:X}"

        placement = f"> {section.vma.name}"
        if section.is_boot_copy:
            placement += f" AT > {section.lma.name}"

        block = SECTION_TEMPLATE.substitute(
            name=name,
            address=address,
            type=" (NOLOAD)" if section.kind.is_zero_fill else "",
            body="\n".join(_INDENT + line for line in body),
            placement=placement,
        )
        if section.is_boot_copy:
            block += f"\n    __{name}_load__ = LOADADDR(.{name});"
        return block

    @staticmethod
    def _inputs(section: Section) -> tuple[str, ...]:
        if section.name == section.kind.value:
            return KIND_INPUTS[section.kind]
        pattern = f"*(.{section.name} .{section.name}.*)"
        if section.kind in KEEP_KINDS:
            pattern = f"KEEP({pattern})"
        return (pattern,)

    @staticmethod
    def _startup_home(layout: "MemoryLayout") -> Section:
        """Vector table whose region will hold the startup glue.

        The glue has to be executable where it is loaded, before anything is
        copied, so it follows the vector table into its boot region.
        """
        sections = layout.ordered_sections()
        home = next((s for s in sections if s.kind is SectionKind.VECTOR_TABLE), None)
        if home is None:
            raise ConfigurationError(
                config_key=STARTUP_SECTION,
                message="startup glue needs a vector table region to live in",
            )
        if not home.vma.provides(Access.EXECUTE):
            raise ConfigurationError(
                config_key=STARTUP_SECTION,
                message=f"region '{home.vma.name}' holding the vector table is not executable",
            )
        return home

    @staticmethod
    def _stack_top(sections: list[Section]) -> str:
        stacks = [s for s in sections if s.kind is SectionKind.STACK]
        if not stacks:
            return ""
        return f"    PROVIDE(__stack_top__ = __{stacks[0].name}_end__);"

    @staticmethod
    def _externs(section: Section, suffixes: tuple[str, ...]) -> list[str]:
        return [f"extern uint8_t __{section.name}_{suffix}__[];" for suffix in suffixes]

    @staticmethod
    def _check_identifiers(layout: "MemoryLayout") -> None:
        for region in layout.regions:
            if not _IDENTIFIER.match(region.name):
                raise ConfigurationError(
                    config_key=region.name,
                    message="region name is not a valid linker identifier",
                )
        for section in layout.ordered_sections():
            if not _IDENTIFIER.match(section.name):
                raise ConfigurationError(
                    config_key=section.name,
                    message="section name is not a valid linker identifier",
                )
