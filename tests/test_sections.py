import pytest

import basedrum.arrangement
import basedrum.sections
import basedrum.song


@pytest.mark.parametrize("bar, name", [
	(0, "intro"),
	(1, "intro"),
	(2, "buildup1"),
	(7, "buildup1"),
	(8, "buildup2"),
	(16, "buildup3"),
	(20, "breakdown1"),
	(22, "rebuild1"),
	(24, "peak1"),
	(26, "breakdown2"),
	(28, "peak2"),
	(100, "peak2"),
])
def test_default_sections (bar: int, name: str) -> None:

	"""0-based bars map onto the 32-bar dance structure."""

	assert basedrum.sections.SectionVolumeMap().section_for_bar(bar) == name


def test_volume_offsets () -> None:

	"""Listed tracks get their offset; others get zero."""

	sections = basedrum.sections.SectionVolumeMap()

	assert sections.volume_offset(20, "kick") == 2.0
	assert sections.volume_offset(26, "kick") == 3.0
	assert sections.volume_offset(2, "snare") == -2.0
	assert sections.volume_offset(20, "ride") == 0.0


def test_custom_tables () -> None:

	"""Ranges and adjustments are plain data."""

	sections = basedrum.sections.SectionVolumeMap(
		[basedrum.sections.SectionRange("verse", 0, 4), basedrum.sections.SectionRange("chorus", 4, None)],
		{"chorus": {"lead": 3}}
	)

	assert sections.section_for_bar(3) == "verse"
	assert sections.volume_offset(5, "lead") == 3.0
	assert sections.volume_offset(1, "lead") == 0.0


def test_empty_ranges_are_rejected () -> None:

	"""A map needs at least one section."""

	with pytest.raises(ValueError):
		basedrum.sections.SectionVolumeMap([])


def test_section_info_progress () -> None:

	"""Position within a section is reported 0-based."""

	info = basedrum.sections.SectionVolumeMap().section_info(10)

	assert info.name == "buildup2"
	assert info.bar == 2
	assert info.bars == 8
	assert info.progress == pytest.approx(0.25)


def test_from_arrangement_follows_document_bars () -> None:

	"""1-based arrangement bars become 0-based ranges; the last one is open-ended."""

	sections = {
		name: basedrum.song.ArrangementSection.model_validate(section)
		for name, section in basedrum.arrangement.DEFAULT_ARRANGEMENT.items()
	}
	derived = basedrum.sections.SectionVolumeMap.from_arrangement(sections)

	assert derived.section_for_bar(0) == "intro"
	assert derived.section_for_bar(3) == "intro"
	assert derived.section_for_bar(4) == "buildup1"
	assert derived.section_for_bar(20) == "breakdown1"
	assert derived.section_for_bar(31) == "peak2"
	assert derived.section_for_bar(60) == "peak2"
	assert derived.volume_offset(20, "kick") == 2.0


def test_from_arrangement_without_sections () -> None:

	"""No arrangement means the default ranges."""

	assert basedrum.sections.SectionVolumeMap.from_arrangement(None).section_for_bar(20) == "breakdown1"
