import logging

import pytest
from overrides import override  # type: ignore

from ldscript.core.capabilities import RegionKind
from ldscript.core.exceptions import (
    CapabilityError,
    ConfigurationError,
    GenerationError,
    IncompleteLayoutError,
    InvalidSectionError,
    LayoutFrozenError,
    OverlappingRegionError,
    UnknownRegionError,
)
from ldscript.core.layout import LayoutState, MemoryLayout
from ldscript.core.sections import SectionKind
from ldscript.interfaces.serializer import LayoutSerializer
from ldscript.utils.consts import kilobytes


class TestRegions:
    def test_reference_scenario(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        ram = layout.add_rwx_region("ram", 0x20000000, 0x40000)

        with pytest.raises(OverlappingRegionError) as excinfo:
            layout.add_rwx_region("ram2", 0x20000000, 0x1000)
        assert excinfo.value.conflicting_id == "ram"

        text = layout.text(ram, flash)
        assert text.is_boot_copy
        assert text.size is None

        bss = layout.bss(ram)
        assert not bss.is_boot_copy
        assert bss.vma == bss.lma == ram

        assert [r.name for r in layout.regions] == ["flash", "ram"]

    def test_typed_constructors(self, layout):
        assert layout.add_rw_region("a", 0x0, 0x10).kind is RegionKind.RW
        assert layout.add_rx_region("b", 0x10, 0x10).kind is RegionKind.RX
        assert layout.add_rwx_region("c", 0x20, 0x10).kind is RegionKind.RWX
        assert layout.add_region("d", 0x30, 0x10, RegionKind.RX).kind is RegionKind.RX

    def test_round_trip(self, layout):
        layout.add_rw_region("bkpsram", 0x40024000, kilobytes(4))

        region = layout.get_region("bkpsram")
        assert region.base == 0x40024000
        assert region.size == 4096
        assert region.kind is RegionKind.RW

    def test_layout_usable_after_overlap(self, layout):
        layout.add_rx_region("flash", 0x0, 0x1000)
        with pytest.raises(OverlappingRegionError):
            layout.add_rw_region("bad", 0x800, 0x1000)

        ram = layout.add_rw_region("ram", 0x1000, 0x1000)
        assert ram in layout.regions
        assert layout.get_region("bad") is None

    def test_resolve_region(self, cortex_m_layout):
        layout, flash, ram = cortex_m_layout
        assert layout.resolve_region(0x100) == flash
        assert layout.resolve_region(0x20000100) == ram
        assert layout.resolve_region(0x10000000) is None


class TestCapabilities:
    def test_text_vma_needs_execute(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        sram = layout.add_rw_region("sram", 0x20000000, 0x8000)

        with pytest.raises(CapabilityError) as excinfo:
            layout.text(sram, flash)

        assert excinfo.value.region == "sram"
        assert excinfo.value.required == "X"
        assert excinfo.value.provided == "RW"
        assert layout.get_section("text") is None

    def test_capability_error_is_configuration_error(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        with pytest.raises(ConfigurationError):
            layout.bss(flash)

    @pytest.mark.parametrize(
        "operation",
        [
            lambda layout, flash, sram: layout.data(flash, flash),
            lambda layout, flash, sram: layout.bss(flash),
            lambda layout, flash, sram: layout.stack(flash, 0x100),
            lambda layout, flash, sram: layout.ramfunc(sram, flash),
        ],
    )
    def test_rejected_before_placement(self, layout, operation):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        sram = layout.add_rw_region("sram", 0x20000000, 0x8000)

        with pytest.raises(CapabilityError):
            operation(layout, flash, sram)

        assert layout.sections == {}

    @pytest.mark.parametrize(
        "operation",
        [
            lambda layout, rom, flash: layout.text(rom, flash),
            lambda layout, rom, flash: layout.ramfunc(rom, flash),
            lambda layout, rom, flash: layout.custom_section("config", rom, flash),
        ],
    )
    def test_boot_copy_vma_must_be_writable(self, layout, operation):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        rom = layout.add_rx_region("rom", 0x10000000, 0x8000)

        with pytest.raises(CapabilityError) as excinfo:
            operation(layout, rom, flash)

        assert excinfo.value.region == "rom"
        assert "W" in excinfo.value.required
        assert layout.sections == {}

    def test_allowed_placements(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        sram = layout.add_rw_region("sram", 0x20000000, 0x8000)
        ram = layout.add_rwx_region("ram", 0x30000000, 0x8000)

        layout.vector_table(flash)
        layout.text(flash, flash)
        layout.ramfunc(ram, flash)
        layout.data(sram, flash)
        layout.bss(sram)
        layout.stack(ram, 0x400)
        layout.custom_section("config", flash, flash)

        assert len(layout.sections) == 7

    def test_lma_in_read_write_region(self, layout):
        rw_flash = layout.add_rw_region("FLASH", 0x0, 1024)
        ram = layout.add_rwx_region("RAM", 0x1000, 1024)

        section = layout.text(ram, rw_flash)
        assert section.is_boot_copy

    def test_handle_from_other_layout_is_rejected(self, layout):
        other = MemoryLayout("other")
        foreign = other.add_rwx_region("ram", 0x20000000, 0x1000)
        layout.add_rx_region("flash", 0x0, 0x1000)

        with pytest.raises(UnknownRegionError):
            layout.bss(foreign)


class TestSections:
    def test_last_write_wins(self, layout, caplog):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        ram = layout.add_rwx_region("ram", 0x20000000, 0x8000)

        layout.text(flash, flash)
        with caplog.at_level(logging.WARNING):
            final = layout.text(ram, flash, size=0x400)

        assert layout.sections == {"text": final}
        assert final.is_boot_copy
        assert "redefined" in caplog.text

    def test_named_convenience_sections(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        ccram = layout.add_rw_region("ccram", 0x10000000, 0x1000)

        section = layout.data(ccram, flash, name="ccram_data")

        assert section.kind is SectionKind.DATA
        assert layout.get_section("ccram_data") is section
        assert layout.get_section("data") is None

    def test_custom_section(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)
        section = layout.custom_section("config", flash, flash, size=0x100, offset=0x7F00)

        assert section.kind is SectionKind.CUSTOM
        assert section.offset == 0x7F00

    @pytest.mark.parametrize(
        "size, offset",
        [
            (0, None),
            (-1, None),
            (0x9000, None),
            (None, 0x8000),
            (None, -4),
            (0x200, 0x7F00),
        ],
    )
    def test_invalid_placement(self, layout, size, offset):
        flash = layout.add_rx_region("flash", 0x0, 0x8000)

        with pytest.raises(InvalidSectionError):
            layout.custom_section("config", flash, flash, size=size, offset=offset)

        assert layout.get_section("config") is None


class TestLifecycle:
    def test_states(self, layout, tmp_path):
        assert layout.state is LayoutState.EMPTY
        flash = layout.add_rx_region("flash", 0x0, 0x1000)
        assert layout.state is LayoutState.POPULATED
        layout.vector_table(flash)

        layout.generate(tmp_path)

        assert layout.state is LayoutState.GENERATED

    def test_frozen_after_generate(self, cortex_m_layout, tmp_path):
        layout, flash, ram = cortex_m_layout
        layout.generate(tmp_path)

        with pytest.raises(LayoutFrozenError):
            layout.add_rw_region("late", 0x30000000, 0x100)
        with pytest.raises(LayoutFrozenError):
            layout.bss(ram, name="late_bss")
        with pytest.raises(LayoutFrozenError):
            layout.generate(tmp_path)

    def test_generate_writes_files(self, cortex_m_layout, tmp_path):
        layout, _, _ = cortex_m_layout
        out_dir = tmp_path / "nested" / "build"

        written = layout.generate(out_dir)

        assert [p.name for p in written] == ["link.x", "ldscript_init.c"]
        assert all(p.parent == out_dir and p.is_file() for p in written)
        assert "MEMORY" in (out_dir / "link.x").read_text(encoding="utf-8")

    def test_generate_with_custom_serializer(self, cortex_m_layout, tmp_path):
        layout, _, _ = cortex_m_layout

        class RegionListing(LayoutSerializer):
            @override
            def render(self, layout):
                return {"regions.txt": "\n".join(r.name for r in layout.regions)}

        written = layout.generate(tmp_path, serializer=RegionListing())

        assert [p.name for p in written] == ["regions.txt"]
        assert written[0].read_text(encoding="utf-8") == "flash\nram"

    def test_generate_is_deterministic(self, tmp_path):
        outputs = []
        for run in range(2):
            layout = MemoryLayout("board")
            flash = layout.add_rx_region("flash", 0x0, 0x8000)
            ram = layout.add_rwx_region("ram", 0x20000000, 0x8000)
            if run == 0:
                layout.vector_table(flash)
                layout.data(ram, flash)
                layout.bss(ram)
            else:
                layout.bss(ram)
                layout.data(ram, flash)
                layout.vector_table(flash)
            path = layout.generate(tmp_path / str(run))[0]
            outputs.append(path.read_text(encoding="utf-8"))

        assert outputs[0] == outputs[1]

    def test_missing_vector_table(self, layout, tmp_path):
        flash = layout.add_rx_region("flash", 0x0, 0x1000)
        layout.text(flash, flash)

        with pytest.raises(IncompleteLayoutError, match="vector table"):
            layout.generate(tmp_path)

        assert layout.state is LayoutState.POPULATED
        assert list(tmp_path.iterdir()) == []

    def test_empty_layout(self, layout, tmp_path):
        with pytest.raises(IncompleteLayoutError, match="no memory regions"):
            layout.generate(tmp_path)

    def test_duplicate_region_names(self, layout, tmp_path):
        flash = layout.add_rx_region("FLASH", 0x0, 1024)
        layout.add_rx_region("FLASH", 0x10000000, 1024)
        layout.vector_table(flash)

        with pytest.raises(IncompleteLayoutError, match="unique"):
            layout.generate(tmp_path)

    def test_declared_sizes_must_fit_region(self, layout, tmp_path):
        flash = layout.add_rx_region("flash", 0x0, 0x1000)
        ram = layout.add_rwx_region("ram", 0x20000000, 0x4000)
        layout.vector_table(flash, size=0x800)
        layout.data(ram, flash, size=0x400)
        layout.ramfunc(ram, flash, size=0x600)

        with pytest.raises(IncompleteLayoutError, match="flash"):
            layout.validate()

    def test_pinned_sections_must_not_overlap(self, layout, tmp_path):
        flash = layout.add_rx_region("flash", 0x0, 0x1000)
        layout.vector_table(flash, offset=0, size=0x100)
        layout.custom_section("config", flash, flash, offset=0x80, size=0x100)

        with pytest.raises(IncompleteLayoutError, match="overlaps section 'vector_table'"):
            layout.generate(tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_adjacent_pinned_sections(self, layout):
        flash = layout.add_rx_region("flash", 0x0, 0x1000)
        ram = layout.add_rwx_region("ram", 0x20000000, 0x1000)
        layout.vector_table(flash, offset=0, size=0x100)
        layout.custom_section("config", flash, flash, offset=0x100, size=0x100)
        layout.custom_section("shared", ram, ram, offset=0x0, size=0x100)

        layout.validate()

    def test_unwritable_output_directory(self, cortex_m_layout, tmp_path):
        layout, _, _ = cortex_m_layout
        blocker = tmp_path / "not_a_directory"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(GenerationError) as excinfo:
            layout.generate(blocker)

        assert "not_a_directory" in excinfo.value.path
        assert layout.state is LayoutState.POPULATED

    def test_describe(self, cortex_m_layout):
        layout, _, _ = cortex_m_layout
        description = layout.describe()

        assert description["name"] == "cortex_m"
        assert description["state"] == "populated"
        assert description["regions"][0] == {
            "name": "flash",
            "base": "0x00000000",
            "size": "32K",
            "end": "0x00008000",
            "access": "RX",
        }
        data = next(s for s in description["sections"] if s["name"] == "data")
        assert data["boot_copy"] is True
        assert data["vma"] == "ram"
        assert data["lma"] == "flash"
