"""
Unit and integration tests for evolution lines.

Tests cover:
- Generation records and their statistics helpers
- In-memory evolution line bookkeeping
- File-backed save/open round trips
- Corrupt, mismatched and busy files

Author: Evoline Team
License: MIT
"""

import struct

import numpy as np
import pytest

from evoline.exceptions import (
    CorruptFileError,
    DecodeError,
    FileBusyError,
    PreconditionError,
    SchemaMismatchError,
)
from evoline.genome.binary import BinaryWriter
from evoline.genome.history import EvolutionLine, GenerationRecord
from evoline.genome.population import Population
from evoline.genome.registry import GenomeKind, SchemaRegistry
from evoline.genome.schema import SchemaBuilder
from evoline.storage import FileBackedEvolutionLine, LazyEvolutionLine

from helpers import advance


def assert_lines_equal(actual, expected):
    assert actual.count == expected.count
    assert actual.generations == expected.generations
    for index in range(expected.count):
        assert list(actual.get_population(index)) == list(expected.get_population(index))
    assert list(actual.current_population) == list(expected.current_population)


# ============================================================================
# Generation Record Tests
# ============================================================================

class TestGenerationRecord:
    """Test generation metadata."""

    def test_statistics_are_read_only(self):
        record = GenerationRecord(1, 2, np.ones((1, 2, 3)), 0)
        with pytest.raises(ValueError):
            record.statistics[0, 0, 0] = 5.0

    def test_shape_must_match_population_size(self):
        with pytest.raises(PreconditionError):
            GenerationRecord(1, 3, np.ones((1, 2, 1)), 0)

    def test_statistics_helpers(self):
        statistics = [
            [[1.0, 3.0], [4.0, 6.0]],
            [[0.0, 0.0], [10.0, 20.0]],
        ]
        record = GenerationRecord(7, 2, statistics, 0)

        assert record.statistic_count == 2
        assert record.repeat_count == 2
        np.testing.assert_allclose(record.statistics_for_individuals(), [[2.0, 5.0], [0.0, 15.0]])
        assert record.fitness_values() == [2.0, 5.0]

        summary = record.statistic_summary(1)
        assert summary["mean"] == pytest.approx(7.5)
        assert summary["std"] == pytest.approx(7.5)
        assert summary["max"] == 15.0

    def test_value_equality(self):
        assert GenerationRecord(1, 1, [[[2.0]]], 0) == GenerationRecord(1, 1, [[[2.0]]], 0)
        assert GenerationRecord(1, 1, [[[2.0]]], 0) != GenerationRecord(1, 1, [[[2.5]]], 0)


# ============================================================================
# In-Memory Line Tests
# ============================================================================

class TestEvolutionLine:
    """Test in-memory generation bookkeeping."""

    def test_create(self, lion_kind, rng):
        line = EvolutionLine.create(lion_kind, 6, rng)
        assert line.count == len(line) == 0
        assert line.current_population.size == 6
        assert line.statistic_names == ("fitness", "catches")

    def test_add_generation_retires_current_population(
        self, lion_kind, default_probabilities, statistics_factory, rng
    ):
        line = EvolutionLine.create(lion_kind, 4, rng)
        first = line.current_population

        advance(line, default_probabilities, 1, rng)

        assert line.count == 1
        assert line.get_population(0) is first
        assert line.current_population is not first
        assert line[0].seed == 1000
        assert line[0].population_size == 4
        assert line[0].statistics.shape == (2, 4, 2)

    def test_first_chromosome_indices_accumulate(
        self, lion_kind, default_probabilities, statistics_factory, rng
    ):
        line = EvolutionLine.create(lion_kind, 4, rng)
        advance(line, default_probabilities, 3, rng, sizes=[6, 2, 4])

        assert [record.first_chromosome_index for record in line] == [0, 4, 10]
        assert [record.population_size for record in line] == [4, 6, 2]
        assert line.next_chromosome_index == 12
        assert line.current_population.size == 4

    def test_statistics_shape_checked(self, lion_kind, default_probabilities, rng):
        line = EvolutionLine.create(lion_kind, 4, rng)
        next_population = Population.random(4, lion_kind.schema, rng)
        with pytest.raises(PreconditionError):
            line.add_generation(1, np.ones((2, 4, 1)), next_population)
        assert line.count == 0

    def test_population_of_other_kind_rejected(self, lion_kind, flat_schema, statistics_factory, rng):
        line = EvolutionLine.create(lion_kind, 4, rng)
        with pytest.raises(PreconditionError):
            line.add_generation(1, statistics_factory(lion_kind, 4), Population.random(4, flat_schema, rng))

    def test_seed_must_fit_int32(self, lion_kind, statistics_factory, rng):
        line = EvolutionLine.create(lion_kind, 4, rng)
        with pytest.raises(PreconditionError):
            line.add_generation(2**31, statistics_factory(lion_kind, 4), line.current_population)

    def test_slice_for_individual(self, lion_kind, nested_schema, rng):
        sliced = EvolutionLine.create(lion_kind, 4, rng)
        assert [sliced.slice_for_individual(i) for i in range(4)] == [0, 0, 1, 1]

        unsliced = EvolutionLine.create(GenomeKind("Lion", nested_schema), 4, rng)
        assert unsliced.slice_for_individual(3) == 0

    def test_fitness_progression_and_summary(
        self, lion_kind, default_probabilities, statistics_factory, rng
    ):
        line = EvolutionLine.create(lion_kind, 4, rng)
        assert line.compute_summary()["total_generations"] == 0

        advance(line, default_probabilities, 2, rng)

        # Best individual (i=3) averages 31.5 + offset over its two repeats
        assert line.fitness_progression() == [(0, 31.5), (1, 32.5)]
        summary = line.compute_summary()
        assert summary["total_generations"] == 2
        assert summary["total_genomes"] == 8
        assert summary["fitness_improvement"] == pytest.approx(1.0)


# ============================================================================
# File-Backed Line Tests
# ============================================================================

@pytest.mark.integration
class TestFileBackedEvolutionLine:
    """Test saving and opening evolution-line files."""

    def test_save_open_round_trip(
        self, line_path, lion_kind, registry, default_probabilities, statistics_factory, rng
    ):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 4, rng)
        advance(line, default_probabilities, 3, rng, sizes=[6, 4, 4])
        line.save()

        opened = FileBackedEvolutionLine.open(line_path, registry)

        assert opened.identifier == "Lion"
        assert_lines_equal(opened, line)
        assert opened.next_chromosome_index == line.next_chromosome_index

    def test_empty_line_round_trip(self, line_path, lion_kind, registry, rng):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 2, rng)
        line.save()
        opened = FileBackedEvolutionLine.open(line_path, registry)
        assert opened.count == 0
        assert list(opened.current_population) == list(line.current_population)

    def test_file_layout_header(self, line_path, lion_kind, rng):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 2, rng)
        line.save()
        data = line_path.read_bytes()
        assert data[:4] == b"\x00\x00\x00\x00"
        assert data[4:9] == b"\x04Lion"

    def test_reopened_line_keeps_evolving(
        self, line_path, lion_kind, registry, default_probabilities, statistics_factory, rng
    ):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 4, rng)
        advance(line, default_probabilities, 1, rng)
        line.save()

        opened = FileBackedEvolutionLine.open(line_path, registry)
        advance(opened, default_probabilities, 1, rng)
        opened.save()

        again = FileBackedEvolutionLine.open(line_path, registry)
        assert again.count == 2
        assert again[1].first_chromosome_index == 4

    def test_open_adapts_to_stored_field_order(self, line_path, default_probabilities, rng):
        stored = SchemaBuilder("Cub").real("speed").integer("size", 0, 9).build()
        live = SchemaBuilder("Cub").integer("size", 0, 9).real("speed").build()
        kind = GenomeKind("Cub", stored)

        line = FileBackedEvolutionLine.create(line_path, kind, 4, rng)
        line.add_generation(
            5, np.ones((1, 4, 1)), line.current_population.evolve(4, [1, 1, 1, 1], default_probabilities, rng)
        )
        line.save()

        opened = FileBackedEvolutionLine.open(line_path, SchemaRegistry([GenomeKind("Cub", live)]))

        assert opened.schema.gene_names == ("speed", "size")
        assert_lines_equal(opened, line)

    def test_save_as_switches_path(self, temp_dir, lion_kind, registry, rng):
        line = FileBackedEvolutionLine.create(temp_dir / "a.evo", lion_kind, 2, rng)
        line.save()
        line.save_as(temp_dir / "b.evo")

        assert line.path == temp_dir / "b.evo"
        assert (temp_dir / "b.evo").read_bytes() == (temp_dir / "a.evo").read_bytes()

    def test_unknown_kind(self, line_path, lion_kind, rng):
        FileBackedEvolutionLine.create(line_path, lion_kind, 2, rng).save()
        with pytest.raises(SchemaMismatchError):
            FileBackedEvolutionLine.open(line_path, SchemaRegistry())

    def test_bad_version(self, line_path, lion_kind, registry, rng):
        FileBackedEvolutionLine.create(line_path, lion_kind, 2, rng).save()
        data = bytearray(line_path.read_bytes())
        data[0] = 1
        line_path.write_bytes(bytes(data))
        with pytest.raises(CorruptFileError):
            FileBackedEvolutionLine.open(line_path, registry)

    def test_inconsistent_chromosome_index(
        self, line_path, lion_kind, registry, default_probabilities, statistics_factory, rng
    ):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 4, rng)
        advance(line, default_probabilities, 2, rng)
        good = line[1]
        line._generations[1] = GenerationRecord(good.seed, good.population_size, good.statistics, 3)
        line.save()

        with pytest.raises(CorruptFileError):
            FileBackedEvolutionLine.open(line_path, registry)

    def test_truncated_file(
        self, line_path, lion_kind, registry, default_probabilities, statistics_factory, rng
    ):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 4, rng)
        advance(line, default_probabilities, 1, rng)
        line.save()
        line_path.write_bytes(line_path.read_bytes()[:-10])

        with pytest.raises(DecodeError):
            FileBackedEvolutionLine.open(line_path, registry)

    @pytest.mark.parametrize("line_class", [FileBackedEvolutionLine, LazyEvolutionLine])
    def test_oversized_population_in_record(
        self, line_class, line_path, lion_kind, registry, default_probabilities, rng
    ):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 4, rng)
        advance(line, default_probabilities, 1, rng)
        line.save()

        descriptor = BinaryWriter()
        lion_kind.schema.write_type_descriptor(descriptor)
        # version, "Lion", descriptor, generation count, seed
        offset = 4 + 5 + len(descriptor.getvalue()) + 4 + 4
        data = bytearray(line_path.read_bytes())
        assert struct.unpack_from("<i", data, offset)[0] == 4
        struct.pack_into("<i", data, offset, 2**31 - 1)
        line_path.write_bytes(bytes(data))

        with pytest.raises(DecodeError):
            line_class.open(line_path, registry)

    def test_file_busy(self, line_path, lion_kind, rng):
        line = FileBackedEvolutionLine.create(line_path, lion_kind, 2, rng)
        line.save()

        with line._file_access("rb"):
            assert line.in_use
            with pytest.raises(FileBusyError):
                line.save()

        assert not line.in_use
        line.save()

    def test_access_released_after_error(self, temp_dir, lion_kind, rng):
        line = FileBackedEvolutionLine.create(temp_dir / "missing" / "line.evo", lion_kind, 2, rng)
        with pytest.raises(FileNotFoundError):
            line.save()
        assert not line.in_use
