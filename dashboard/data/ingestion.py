"""Ingestion of routing-platform exports into the database.

An export is a JSON document ``{"taches": [...], "tournees": [...]}`` whose
records use the platform's camelCase keys. Each field is read through a
fallback chain of key paths, and values that cannot be coerced are stored
as NULL so the statistics simply leave them out.
"""

from __future__ import annotations

import glob
import json
import logging
import os

from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyRoundRepository,
    SqlAlchemyTaskRepository,
)
from domain.models import Livreur, Tache, Tournee

logger = logging.getLogger(__name__)


def _get(data: dict, *paths: str):
    """Return the first non-None value found at one of the dotted ``paths``."""
    for path in paths:
        value = data
        for key in path.split("."):
            if not isinstance(value, dict):
                value = None
                break
            value = value.get(key)
        if value is not None:
            return value
    return None


def _to_float(value) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None


def _to_bool(value) -> bool | None:
    return value if isinstance(value, bool) else None


def _to_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_livreur(data: dict) -> Livreur | None:
    livreur = data.get("livreur")
    if isinstance(livreur, dict):
        return Livreur(
            prenom=livreur.get("prenom"),
            nom=livreur.get("nom"),
            id_externe=_to_str(livreur.get("idExterne")),
        )
    driver = data.get("driver")
    if isinstance(driver, dict):
        return Livreur(
            prenom=driver.get("firstName"),
            nom=driver.get("lastName"),
            id_externe=_to_str(driver.get("externalId")),
        )
    return None


def parse_tache(data: dict) -> Tache | None:
    """Build a domain Tache from an export record, None if it has no id."""
    tache_id = _get(data, "tacheId", "id", "_id", "referenceTache")
    if tache_id is None:
        return None
    return Tache(
        tache_id=str(tache_id),
        livreur=_parse_livreur(data),
        prenom_chauffeur=_get(data, "prenomChauffeur"),
        nom_chauffeur=_get(data, "nomChauffeur"),
        nom_hub=_get(data, "nomHub", "hubName"),
        progression=_get(data, "progression"),
        status=_get(data, "status"),
        notation=_to_float(_get(data, "metaDonnees.notationLivreur", "notationLivreur")),
        commentaire=_to_str(_get(
            data, "metaDonnees.commentaireLivreur", "metaCommentaireLivreur",
        )),
        debut_creneau=_get(data, "creneauHoraire.debut", "debutFenetre", "debutCreneauInitial"),
        fin_creneau=_get(data, "creneauHoraire.fin", "finFenetre", "finCreneauInitial"),
        date_cloture=_get(data, "dateCloture"),
        complete_par=_get(data, "completePar", "terminePar"),
        adresse_correcte=_to_bool(_get(data, "heureReelle.arrivee.adresseCorrecte")),
        sans_contact_force=_to_bool(_get(data, "execution.sansContact.forced", "sansContactForce")),
        nom_tournee=_get(data, "nomTournee"),
        date=_get(data, "date", "dateCreation"),
        poids_kg=_to_float(_get(data, "poidsEnKg")),
        carrier_override=_get(data, "carrierOverride"),
    )


def parse_tournee(data: dict) -> Tournee | None:
    """Build a domain Tournee from an export record, None if it has no name."""
    nom = _get(data, "nom", "name")
    if not nom:
        return None
    return Tournee(
        nom=str(nom),
        date=_get(data, "date"),
        nom_hub=_get(data, "nomHub", "hubName"),
        statut=_get(data, "statut", "status"),
        capacite_poids=_to_float(_get(data, "capacitePoids", "vehicle.dimensions.poids")),
        livreur=_parse_livreur(data),
        prenom_chauffeur=_get(data, "prenomChauffeur"),
        nom_chauffeur=_get(data, "nomChauffeur"),
        carrier_override=_get(data, "carrierOverride"),
        id=_to_str(_get(data, "id", "_id")),
    )


def ingest_export_json(session: Session, data: dict) -> dict:
    """Ingest one export document. Returns counts of new and skipped records.

    Tasks already known by id are skipped; rounds are upserted by
    (name, date, hub).
    """
    taches = SqlAlchemyTaskRepository(session)
    tournees = SqlAlchemyRoundRepository(session)
    counts = {"taches": 0, "tournees": 0, "doublons": 0, "invalides": 0}

    for record in data.get("taches", []) or []:
        tache = parse_tache(record) if isinstance(record, dict) else None
        if tache is None:
            counts["invalides"] += 1
            continue
        if taches.find_by_id(tache.tache_id) is not None:
            counts["doublons"] += 1
            continue
        taches.save(tache)
        counts["taches"] += 1

    for record in data.get("tournees", []) or []:
        tournee = parse_tournee(record) if isinstance(record, dict) else None
        if tournee is None:
            counts["invalides"] += 1
            continue
        tournees.save(tournee)
        counts["tournees"] += 1

    if counts["invalides"]:
        logger.warning("%d enregistrements sans identifiant ignores", counts["invalides"])
    return counts


def ingest_directory(session: Session, directory: str) -> dict:
    """Ingest all *_export.json files from a directory.
    Returns stats dict with ingested/skipped/errors counts."""

    stats = {"ingested": 0, "skipped": 0, "errors": 0, "files": []}

    pattern = os.path.join(directory, "*_export.json")
    for filepath in sorted(glob.glob(pattern)):
        filename = os.path.basename(filepath)
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)

            counts = ingest_export_json(session, data)
            session.commit()
            if counts["taches"] == 0 and counts["tournees"] == 0:
                stats["skipped"] += 1
                stats["files"].append({"file": filename, "status": "skipped"})
            else:
                stats["ingested"] += 1
                stats["files"].append({"file": filename, "status": "ingested", **counts})

        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Echec d'ingestion de %s: %s", filename, e)
            session.rollback()
            stats["errors"] += 1
            stats["files"].append({"file": filename, "status": "error", "error": str(e)})

    logger.info(
        "Ingestion terminee: %d fichiers ingeres, %d ignores, %d en erreur",
        stats["ingested"], stats["skipped"], stats["errors"],
    )
    return stats
