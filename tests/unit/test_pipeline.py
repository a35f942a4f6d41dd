"""Tests for domain.pipeline: end-to-end quality report from tasks and rules."""

import pytest

from domain.models import (
    CarrierRule,
    DepotRule,
    HubCategory,
    Livreur,
    MatchType,
    RuleSet,
    Tache,
)
from domain.pipeline import build_driver_stats, build_quality_report, group_by_driver, main_depot

RULES = RuleSet(
    depot_rules=(
        DepotRule("Aix", HubCategory.WAREHOUSE, ("aix",)),
        DepotRule("Rungis", HubCategory.WAREHOUSE, ("rungis",)),
    ),
    carrier_rules=(
        CarrierRule("YEL'IN", MatchType.SUFFIX, "4", priority=30),
        CarrierRule("TLN", MatchType.SUFFIX, "1", priority=40),
    ),
)


def _tache(n, prenom, nom, hub, notation=None, **kwargs):
    defaults = dict(
        tache_id=f"{prenom}-{n}",
        livreur=Livreur(prenom=prenom, nom=nom) if prenom else None,
        nom_hub=hub,
        progression="COMPLETED",
        notation=notation,
        debut_creneau="2024-05-14T10:00:00Z",
        fin_creneau="2024-05-14T12:00:00Z",
        date_cloture="2024-05-14T11:00:00Z",
        complete_par="mobile",
        adresse_correcte=True,
        sans_contact_force=False,
    )
    defaults.update(kwargs)
    return Tache(**defaults)


def _jean():
    notes = [5, 5, 4, 5, 3]
    taches = [
        _tache(i, "Jean", "Dupont 4", "Aix Les Milles", notes[i] if i < 5 else None)
        for i in range(10)
    ]
    taches[9] = _tache(9, "Jean", "Dupont 4", "Aix Les Milles", date_cloture="2024-05-14T15:00:00Z")
    return taches


class TestGroupByDriver:
    def test_unknown_driver_dropped(self):
        taches = [_tache(1, "Jean", "Dupont 4", "Aix"), _tache(2, None, None, "Aix")]
        assert list(group_by_driver(taches)) == ["Jean Dupont 4"]

    def test_flat_driver_fields(self):
        taches = [
            _tache(1, None, None, "Aix", prenom_chauffeur="Jean", nom_chauffeur="Dupont 4"),
            _tache(2, "Jean", "Dupont 4", "Aix"),
        ]
        assert len(group_by_driver(taches)["Jean Dupont 4"]) == 2


class TestMainDepot:
    def test_most_frequent_depot(self):
        taches = [
            _tache(1, "Jean", "Dupont 4", "Rungis"),
            _tache(2, "Jean", "Dupont 4", "Aix"),
            _tache(3, "Jean", "Dupont 4", "Aix"),
        ]
        assert main_depot(taches, RULES.depot_rules) == "Aix"

    def test_tie_keeps_first_seen(self):
        taches = [_tache(1, "Jean", "Dupont 4", "Rungis"), _tache(2, "Jean", "Dupont 4", "Aix")]
        assert main_depot(taches, RULES.depot_rules) == "Rungis"

    def test_unmatched_hub_is_store(self):
        assert main_depot([_tache(1, "Jean", "Dupont 4", "Fontenay")], RULES.depot_rules) == "Store"
        assert main_depot([], RULES.depot_rules) == "Store"


class TestBuildDriverStats:
    def test_reference_driver(self):
        (stats,) = build_driver_stats(_jean(), RULES)
        assert stats.name == "Jean Dupont 4"
        assert stats.depot == "Aix"
        assert stats.carrier == "YEL'IN"
        assert stats.average_rating == pytest.approx(4.4)
        assert stats.punctuality_rate == pytest.approx(90.0)
        assert stats.score == pytest.approx(18.6)

    def test_unrated_driver_scores_zero(self):
        (stats,) = build_driver_stats([_tache(1, "Paul", "Martin 1", "Rungis")], RULES)
        assert stats.score == 0.0
        assert stats.carrier == "TLN"


class TestBuildQualityReport:
    """Tests for build_quality_report."""

    def test_report(self):
        taches = _jean() + [
            _tache(1, "Paul", "Martin 1", "Rungis", 2, commentaire="Produit casse"),
            _tache(2, "Paul", "Martin 1", "Rungis", 5),
            _tache(3, None, None, "Rungis", 1),
        ]
        report = build_quality_report(taches, RULES)

        assert {d.name for d in report.drivers} == {"Jean Dupont 4", "Paul Martin 1"}
        assert [d.name for d in report.tree.children] == ["Aix", "Rungis"]
        assert report.tree.total_ratings == 7
        assert report.tree.total_alerts == 2

        # the unattributed alert still counts in the recurrence tree
        assert [d.name for d in report.alerts] == ["Rungis", "Aix"]
        rungis = report.alerts[0]
        assert [c.name for c in rungis.carriers] == ["TLN", "Unknown"]
        assert rungis.carriers[0].drivers[0].comment_categories == {"Casse produit": 1}

        # the dashboard summary covers every task, attributed or not
        assert report.summary.total_tasks == len(taches)
        assert "Unknown" not in dict(report.summary.top_five_star_drivers)

    def test_recomputed_from_rules(self):
        taches = _jean()
        first = build_quality_report(taches, RULES)
        other_rules = RuleSet(
            carrier_rules=(CarrierRule("Autre", MatchType.CONTAINS, "jean", priority=1),)
        )
        second = build_quality_report(taches, other_rules)
        assert first.drivers[0].carrier == "YEL'IN"
        assert second.drivers[0].carrier == "Autre"
        assert second.drivers[0].depot == "Store"

    def test_empty(self):
        report = build_quality_report([], RULES)
        assert report.drivers == []
        assert report.tree.children == []
        assert report.alerts == []
        assert report.summary.total_tasks == 0
        assert report.summary.top_five_star_drivers == []
