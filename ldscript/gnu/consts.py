"""GNU ld output constants: templates, input-section patterns, file names."""

from string import Template

from ldscript.core.sections import SectionKind

DEFAULT_SCRIPT_NAME = "link.x"
DEFAULT_STARTUP_NAME = "ldscript_init.c"
DEFAULT_ENTRY = "Reset_Handler"
STARTUP_FUNCTION = "__ldscript_init"
# Input section holding the startup glue; kept next to the vector table
STARTUP_SECTION = ".ldscript_init"

STACK_ALIGNMENT = 8

# Input sections collected by sections that use their kind's standard name.
# Sections registered under any other name collect .<name> and .<name>.*
KIND_INPUTS: dict[SectionKind, tuple[str, ...]] = {
    SectionKind.VECTOR_TABLE: (
        "KEEP(*(.vector_table .vector_table.*))",
        "KEEP(*(.isr_vector))",
    ),
    SectionKind.TEXT: (
        "KEEP(*(.init))",
        "KEEP(*(.fini))",
        "*(.text .text.*)",
        "*(.rodata .rodata.*)",
    ),
    SectionKind.RAMFUNC: ("*(.ramfunc .ramfunc.*)",),
    SectionKind.DATA: ("*(.data .data.*)",),
    SectionKind.BSS: ("*(.bss .bss.*)", "*(COMMON)"),
    SectionKind.STACK: (),
    SectionKind.CUSTOM: (),
}

# Kinds whose input sections must survive --gc-sections
KEEP_KINDS = (SectionKind.VECTOR_TABLE,)

SCRIPT_TEMPLATE = Template(
    """\
/*
 * Linker script for layout '${layout}'.
 * Generated by ldscript. Do not edit.
 */

ENTRY(${entry})

MEMORY
{
${memory}
}

SECTIONS
{
${sections}
}
${asserts}"""
)

MEMORY_LINE = Template(
    "    ${name} (${attributes}) : ORIGIN = ${origin}, LENGTH = ${length}"
)

SECTION_TEMPLATE = Template(
    """\
    .${name}${address}${type} :
    {
${body}
    } ${placement}"""
)

SIZE_ASSERT = Template(
    'ASSERT(SIZEOF(.${name}) <= ${size}, "section .${name} exceeds its declared size of ${pretty}");'
)

STARTUP_TEMPLATE = Template(
    """\
/*
 * Section initialization for layout '${layout}'.
 * Generated by ldscript. Do not edit.
 *
 * Call ${function}() from the reset handler before main(). Everything in
 * this file lives in ${section}, which is never copied at boot, so it can
 * run before .text or .ramfunc reach their VMA.
 */

#include <stdint.h>

#define LDSCRIPT_INIT __attribute__((section("${section}"), used))

${externs}

static LDSCRIPT_INIT void ldscript_copy(volatile uint8_t *dst, const uint8_t *src, const uint8_t *end)
{
    while (dst < end) {
        *dst++ = *src++;
    }
}

static LDSCRIPT_INIT void ldscript_zero(volatile uint8_t *dst, const uint8_t *end)
{
    while (dst < end) {
        *dst++ = 0;
    }
}

LDSCRIPT_INIT void ${function}(void)
{
${statements}
}
"""
)

# Plain byte loops: memcpy/memset live in .text, which may itself be boot-copied
COPY_STATEMENT = Template("    ldscript_copy(__${name}_start__, __${name}_load__, __${name}_end__);")

ZERO_STATEMENT = Template("    ldscript_zero(__${name}_start__, __${name}_end__);")
