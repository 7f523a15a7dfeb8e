"""
Unit tests for identity keys, richness scoring, merge and dedupe
"""

import itertools
import random
import pytest
from datetime import datetime, timezone
from ingestion.transformers.reconciler import (
    STATUS_TIER_STEP,
    dedupe,
    identity_key,
    merge,
    reconcile,
    richness,
)
from schemas.canonical import (
    CanonicalRecord,
    GameStatus,
    InningScore,
    Participant,
    PitcherInfo,
)


def full_record() -> CanonicalRecord:
    return CanonicalRecord(
        identity=501,
        status=GameStatus.FINAL,
        date=datetime(2024, 11, 1, 23, 0, tzinfo=timezone.utc),
        round_text="Serie Regular",
        current_inning=9,
        last_play="Elevado al CF",
        venue="Estadio Quisqueya",
        home=Participant(id=10, name="Tigres del Licey", abbreviation="LIC", runs=3, hits=8, errors=0,
                         pitcher=PitcherInfo(id=77, name="J. Perez", wins=3, losses=1, era=2.5)),
        away=Participant(id=20, name="Aguilas Cibaenas", abbreviation="AGU", runs=1, hits=5, errors=2),
        innings=[InningScore(number=1, away=0, home=2), InningScore(number=2, away=1, home=1)],
        plays=["Out", "Hit"],
        betting_lines={"home": -130},
    )


EMPTY_COLLECTIONS = {"innings": [], "plays": [], "betting_lines": {}}


def partial(record: CanonicalRecord, drop: list) -> CanonicalRecord:
    """Copy of ``record`` with the dotted fields in ``drop`` emptied"""
    data = record.model_dump()
    for path in drop:
        target = data
        *parents, leaf = path.split(".")
        for name in parents:
            target = target[name]
        target[leaf] = EMPTY_COLLECTIONS.get(leaf)
    return CanonicalRecord.model_validate(data)


SNAPSHOT_DROPS = [
    ["status", "innings", "plays", "home.pitcher", "away.hits", "current_inning"],
    ["round_text", "betting_lines", "home.runs", "away.runs", "venue"],
    ["last_play", "home.hits", "home.pitcher.era", "date", "away.errors", "away.abbreviation"],
    ["home.name", "innings", "current_inning", "round_text"],
]


class TestIdentityKey:

    def test_primary_identity(self):
        assert identity_key(CanonicalRecord(identity=501)) == "501"
        assert identity_key(CanonicalRecord(identity="G-7")) == "G-7"

    def test_fallback_key(self):
        record = CanonicalRecord(
            date=datetime(2024, 11, 1, 23, 30),
            home=Participant(id=10),
        )

        assert identity_key(record) == "2024-11-01|10|?"
        assert identity_key(CanonicalRecord()) == "?|?|?"

    def test_falsy_identity_uses_fallback(self):
        record = CanonicalRecord(identity=0, home=Participant(id=10), away=Participant(id=20))

        assert identity_key(record) == "?|10|20"


class TestRichness:

    def test_status_tiers_are_ordered(self):
        order = [
            None,
            GameStatus.NOT_STARTED,
            GameStatus.PREVIEW,
            GameStatus.DELAYED,
            GameStatus.FINAL,
            GameStatus.LIVE,
        ]
        scores = [richness(CanonicalRecord(status=status)) for status in order]

        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)
        assert richness(CanonicalRecord(status=GameStatus.SUSPENDED)) == richness(
            CanonicalRecord(status=GameStatus.DELAYED))
        assert richness(CanonicalRecord(status=GameStatus.POSTPONED)) == richness(
            CanonicalRecord(status=GameStatus.NOT_STARTED))

    def test_bonuses_never_outweigh_a_tier(self):
        loaded = full_record().model_copy(update={"status": GameStatus.PREVIEW})
        bare_live_below = CanonicalRecord(status=GameStatus.DELAYED)

        assert richness(loaded) - richness(CanonicalRecord(status=GameStatus.PREVIEW)) == 7
        assert 7 < STATUS_TIER_STEP
        assert richness(bare_live_below) > richness(loaded)

    def test_one_sided_counts_earn_nothing(self):
        record = CanonicalRecord(home=Participant(runs=3, hits=5, errors=0))

        assert richness(record) == 0


class TestMerge:

    def test_live_record_backfilled_from_not_started(self):
        """Live status and runs kept; round text backfilled"""
        a = CanonicalRecord(identity=1, status=GameStatus.LIVE, home=Participant(runs=3), round_text=None)
        b = CanonicalRecord(identity=1, status=GameStatus.NOT_STARTED, round_text="Final")

        for merged in (merge(a, b), merge(b, a)):
            assert merged.status == GameStatus.LIVE
            assert merged.home.runs == 3
            assert merged.round_text == "Final"

    def test_tie_prefers_first_operand(self):
        a = CanonicalRecord(identity=1, venue="Quisqueya")
        b = CanonicalRecord(identity=1, venue="Cibao")

        assert merge(a, b).venue == "Quisqueya"
        assert merge(b, a).venue == "Cibao"

    def test_empty_string_is_backfilled(self):
        a = CanonicalRecord(identity=1, status=GameStatus.LIVE, venue="")
        b = CanonicalRecord(identity=1, venue="Quisqueya")

        assert merge(a, b).venue == "Quisqueya"

    def test_collections_taken_wholesale(self):
        base = CanonicalRecord(status=GameStatus.LIVE, innings=[InningScore(number=1, away=0, home=1)])
        other = CanonicalRecord(
            innings=[InningScore(number=1, away=5, home=5), InningScore(number=2, away=0, home=0)],
            plays=["Out"],
        )

        merged = merge(base, other)

        assert merged.innings == base.innings
        assert merged.plays == ["Out"]

    def test_nested_pitcher_backfill(self):
        a = CanonicalRecord(status=GameStatus.LIVE, home=Participant(pitcher=PitcherInfo(name="J. Perez")))
        b = CanonicalRecord(home=Participant(id=10, pitcher=PitcherInfo(name="Other", era=2.5)))

        merged = merge(a, b)

        assert merged.home.id == 10
        assert merged.home.pitcher == PitcherInfo(name="J. Perez", era=2.5)

    def test_operands_not_mutated(self):
        a = CanonicalRecord(status=GameStatus.LIVE, home=Participant())
        b = CanonicalRecord(home=Participant(id=10, pitcher=PitcherInfo(name="X")), plays=["Out"])

        merged = merge(a, b)
        merged.plays.append("Hit")
        merged.home.pitcher.name = "Changed"

        assert a.home.id is None
        assert a.plays == []
        assert b.plays == ["Out"]
        assert b.home.pitcher.name == "X"

    def test_merge_order_independent_for_snapshots(self):
        """Any fold order over partial snapshots of one game yields the same values"""
        snapshots = [partial(full_record(), drop) for drop in SNAPSHOT_DROPS]
        results = set()
        for order in itertools.permutations(snapshots):
            merged = order[0]
            for record in order[1:]:
                merged = merge(merged, record)
            results.add(merged.model_dump_json())

        assert len(results) == 1
        assert CanonicalRecord.model_validate_json(results.pop()) == full_record()

    def test_merge_associative_for_snapshots(self):
        a, b, c = (partial(full_record(), drop) for drop in SNAPSHOT_DROPS[:3])

        assert merge(merge(a, b), c) == merge(a, merge(b, c))

    def test_same_tier_conflicts_reconcile_in_any_order(self):
        """DELAYED/SUSPENDED observations with clashing scores fold to one answer"""
        observations = [
            CanonicalRecord(identity=7, status=GameStatus.DELAYED, last_play="Lluvia",
                            home=Participant(id=10, runs=3), away=Participant(id=20, runs=1)),
            CanonicalRecord(identity=7, status=GameStatus.SUSPENDED, round_text="Serie Regular",
                            home=Participant(id=10, runs=4), away=Participant(id=20, runs=1)),
            CanonicalRecord(identity=7, status=GameStatus.DELAYED,
                            innings=[InningScore(number=1, away=2, home=5)],
                            home=Participant(id=10, runs=5), away=Participant(id=20, runs=2)),
        ]
        assert len({richness(record) for record in observations}) == 1

        results = {
            reconcile(list(order)).model_dump_json()
            for order in itertools.permutations(observations)
        }

        assert len(results) == 1
        merged = CanonicalRecord.model_validate_json(results.pop())
        assert merged.last_play == "Lluvia"
        assert merged.round_text == "Serie Regular"
        assert len(merged.innings) == 1


class TestDedupe:

    def observations(self):
        live = CanonicalRecord(identity=501, status=GameStatus.LIVE, home=Participant(id=10, runs=3),
                               away=Participant(id=20, runs=1))
        scheduled = CanonicalRecord(identity=501, status=GameStatus.NOT_STARTED, round_text="Serie Regular",
                                    home=Participant(id=10, name="Tigres del Licey"))
        conflicting = CanonicalRecord(identity=501, status=GameStatus.NOT_STARTED, round_text="Semifinal")
        other = CanonicalRecord(identity=502, status=GameStatus.FINAL)
        day = datetime(2024, 11, 3, 19, 0)
        no_id_a = CanonicalRecord(date=day, home=Participant(id=30), away=Participant(id=40), venue="Cibao")
        no_id_b = CanonicalRecord(date=day.replace(hour=20), home=Participant(id=30), away=Participant(id=40),
                                  status=GameStatus.PREVIEW)
        return [live, scheduled, conflicting, other, no_id_a, no_id_b]

    def test_cardinality_equals_distinct_keys(self):
        records = self.observations()

        result = dedupe(records)

        assert len(result) == len({identity_key(r) for r in records}) == 3

    def test_group_is_folded(self):
        result = {identity_key(r): r for r in dedupe(self.observations())}

        game = result["501"]
        assert game.status == GameStatus.LIVE
        assert game.home.runs == 3
        assert game.home.name == "Tigres del Licey"
        assert game.round_text in ("Serie Regular", "Semifinal")

        no_id = result["2024-11-03|30|40"]
        assert no_id.status == GameStatus.PREVIEW
        assert no_id.venue == "Cibao"

    def test_independent_of_input_order(self):
        records = self.observations()
        expected = [r.model_dump_json() for r in dedupe(records)]

        rng = random.Random(7)
        for _ in range(25):
            shuffled = records[:]
            rng.shuffle(shuffled)
            assert [r.model_dump_json() for r in dedupe(shuffled)] == expected

    def test_idempotent(self):
        once = dedupe(self.observations())

        assert dedupe(once) == once

    def test_empty_input(self):
        assert dedupe([]) == []
