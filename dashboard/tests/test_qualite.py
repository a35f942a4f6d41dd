import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_models import Base
from dashboard.analytics.qualite import (
    CATEGORIE_COLUMNS,
    CLASSEMENT_COLUMNS,
    MEILLEURS_COLUMNS,
    RECURRENCE_COLUMNS,
    REPARTITION_COLUMNS,
    categories_commentaires,
    classement_livreurs,
    meilleurs_livreurs,
    rapport_qualite,
    recurrence_alertes,
    repartition_taches,
    resume_global,
    synthese_qualite,
)
from dashboard.config import load_config, seed_rules
from dashboard.data.ingestion import ingest_export_json
from scripts.load_demo_data import build_demo_export


@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    Base.metadata.drop_all(engine)


@pytest.fixture
def demo_session(db_session, monkeypatch):
    monkeypatch.delenv("QUALITE_CONFIG", raising=False)
    seed_rules(db_session, load_config())
    ingest_export_json(db_session, build_demo_export())
    db_session.commit()
    return db_session


@pytest.fixture
def report(demo_session):
    return rapport_qualite(demo_session)


def test_rapport_qualite_drivers(report):
    drivers = {d.name: d for d in report.drivers}
    assert set(drivers) == {"Jean Dupont 4", "Paul Martin 1", "Ines Moreau 9"}

    jean = drivers["Jean Dupont 4"]
    assert jean.depot == "Aix"
    assert jean.carrier == "YEL'IN"
    assert jean.completed_tasks == 10
    assert jean.average_rating == pytest.approx(4.4)
    assert jean.punctuality_rate == pytest.approx(100.0)
    # (88*3 + 100*2 + 100 + 100 + 100) / 8 * 10/50
    assert jean.score == pytest.approx(19.1)

    assert drivers["Ines Moreau 9"].depot == "Store"
    assert drivers["Paul Martin 1"].total_alerts == 2


def test_classement_livreurs(report):
    df = classement_livreurs(report)
    assert list(df.columns) == CLASSEMENT_COLUMNS
    assert list(df["livreur"]) == ["Ines Moreau 9", "Jean Dupont 4", "Paul Martin 1"]
    assert df.loc[0, "score"] == pytest.approx(19.25)
    assert df.loc[2, "alertes"] == 2
    assert df.loc[2, "taux_alerte"] == pytest.approx(200 / 3)


def test_classement_livreurs_notes_min(report):
    df = classement_livreurs(report, notes_min=3)
    assert list(df["livreur"]) == ["Jean Dupont 4", "Paul Martin 1"]


def test_classement_livreurs_empty(report):
    df = classement_livreurs(report, notes_min=100)
    assert df.empty
    assert list(df.columns) == CLASSEMENT_COLUMNS


def test_synthese_qualite(report):
    df = synthese_qualite(report)
    assert list(df["depot"]) == ["Store", "Store", "Aix", "Aix", "Rungis", "Rungis"]
    assert list(df["niveau"]) == ["depot", "carrier"] * 3
    carrier_row = df[(df["depot"] == "Rungis") & (df["niveau"] == "carrier")].iloc[0]
    assert carrier_row["transporteur"] == "TLN"
    assert carrier_row["note_moyenne"] == pytest.approx(10 / 3)


def test_resume_global(report):
    resume = resume_global(report)
    assert resume["notes"] == 10
    assert resume["alertes"] == 3
    assert resume["taux_alerte"] == pytest.approx(30.0)
    assert resume["ponctualite"] == pytest.approx(100.0)
    assert resume["score"] == pytest.approx((19.25 + 19.1 + 17.5) / 3)
    assert resume["taches"] == 30
    assert resume["echecs"] == 0
    assert resume["taux_echec"] == pytest.approx(0.0)
    assert resume["taux_notation"] == pytest.approx(100 / 3)
    assert resume["alertes_qualite"] == 3
    assert resume["en_avance"] == 0
    assert resume["en_retard"] == 0
    assert resume["taux_retard_plus_1h"] == pytest.approx(0.0)


def _extra(tache_id, prenom, nom, **fields):
    return {
        "tacheId": tache_id,
        "livreur": {"prenom": prenom, "nom": nom},
        "nomHub": "Aix Les Milles",
        **fields,
    }


@pytest.fixture
def mixed_report(demo_session):
    ingest_export_json(demo_session, {"taches": [
        _extra("X1", "Jean", "Dupont 4", progression="FAILED"),
        _extra("X2", "Paul", "Martin 1", progression="IN_PROGRESS", status="REJECTED"),
        _extra("X3", "Ines", "Moreau 9", progression="PENDING", status="PENDING"),
        _extra(
            "X4", "Jean", "Dupont 4",
            progression="COMPLETED",
            metaDonnees={"notationLivreur": 5},
            creneauHoraire={"debut": "2024-05-14T10:00:00Z", "fin": "2024-05-14T12:00:00Z"},
            dateCloture="2024-05-14T13:45:00Z",
            completePar="mobile",
        ),
    ]})
    demo_session.commit()
    return rapport_qualite(demo_session)


def test_resume_global_failures_and_lateness(mixed_report):
    resume = resume_global(mixed_report)
    assert resume["taches"] == 34
    assert resume["taches_terminees"] == 31
    assert resume["taches_en_attente"] == 1
    assert resume["echecs"] == 2
    assert resume["taux_echec"] == pytest.approx(200 / 34)
    assert resume["notes_recues"] == 11
    assert resume["taux_notation"] == pytest.approx(1100 / 31)
    assert resume["en_retard"] == 1
    assert resume["retard_plus_1h"] == 1
    assert resume["taux_retard_plus_1h"] == pytest.approx(100 / 31)


def test_repartition_taches(mixed_report):
    df = repartition_taches(mixed_report)
    assert list(df.columns) == REPARTITION_COLUMNS
    counts = {(r.champ, r.valeur): r.taches for r in df.itertuples()}
    assert counts[("status", "Unknown")] == 32
    assert counts[("status", "REJECTED")] == 1
    assert counts[("status", "PENDING")] == 1
    assert counts[("progression", "COMPLETED")] == 31
    assert counts[("progression", "FAILED")] == 1
    assert list(df["champ"]).index("progression") == 3


def test_meilleurs_livreurs(report, mixed_report):
    df = meilleurs_livreurs(report)
    assert list(df.columns) == MEILLEURS_COLUMNS
    assert list(df.itertuples(index=False, name=None)) == [
        ("Jean Dupont 4", 3), ("Ines Moreau 9", 1), ("Paul Martin 1", 1),
    ]
    assert meilleurs_livreurs(mixed_report).iloc[0]["notes_5_etoiles"] == 4


def test_categories_commentaires(report):
    df = categories_commentaires(report)
    assert list(df.columns) == CATEGORIE_COLUMNS
    assert dict(zip(df["categorie"], df["alertes"])) == {
        "Casse produit": 1, "Manquant produit": 1, "Livraison en retard": 1,
    }


def test_recurrence_alertes(report):
    df = recurrence_alertes(report)
    assert list(df.columns) == RECURRENCE_COLUMNS
    assert list(df["livreur"]) == ["Paul Martin 1", "Jean Dupont 4"]

    paul = df.iloc[0]
    assert paul["depot"] == "Rungis"
    assert paul["alertes"] == 2
    assert paul["notes"] == 3
    assert paul["categories"] == {"Casse produit": 1, "Manquant produit": 1}
    assert paul["categorie_principale"] == "Casse produit"

    assert df.iloc[1]["categorie_principale"] == "Livraison en retard"


def test_empty_database(db_session):
    report = rapport_qualite(db_session)
    assert classement_livreurs(report).empty
    assert synthese_qualite(report).empty
    assert recurrence_alertes(report).empty
    assert resume_global(report)["notes"] == 0
    assert resume_global(report)["taux_echec"] is None
    assert repartition_taches(report).empty
    assert categories_commentaires(report).empty
    assert meilleurs_livreurs(report).empty
