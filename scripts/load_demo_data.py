#!/usr/bin/env python3
"""Load a small demo export (tasks, rounds) and the default rules.

Usage:
    PYTHONPATH=. python scripts/load_demo_data.py

Creates three drivers across two depots, with a few low ratings and one
overweight round, so every quality screen has something to show.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from dashboard.config import configure_logging, load_config, seed_rules
from dashboard.data.db import get_engine, init_db, session_scope
from dashboard.data.ingestion import ingest_export_json

DAY = "2024-05-14"

DRIVERS = [
    # (prenom, nom, hub, notes, commentaires)
    ("Jean", "Dupont 4", "Aix Les Milles", [5, 5, 4, 5, 3], {4: "Livreur arrive en retard"}),
    ("Paul", "Martin 1", "Rungis Marée", [2, 5, 3], {0: "Produit casse", 2: "Sac manquant"}),
    ("Ines", "Moreau 9", "Fontenay", [5, 4], {}),
]


def _tache(index, prenom, nom, hub, notation, commentaire):
    heure = 8 + index % 8
    return {
        "tacheId": f"DEMO-{prenom[0]}{index:03d}",
        "livreur": {"prenom": prenom, "nom": nom},
        "nomHub": hub,
        "progression": "COMPLETED",
        "metaDonnees": {"notationLivreur": notation, "commentaireLivreur": commentaire},
        "creneauHoraire": {
            "debut": f"{DAY}T{heure:02d}:00:00Z",
            "fin": f"{DAY}T{heure + 2:02d}:00:00Z",
        },
        "dateCloture": f"{DAY}T{heure + 1:02d}:10:00Z",
        "completePar": "mobile",
        "heureReelle": {"arrivee": {"adresseCorrecte": True}},
        "execution": {"sansContact": {"forced": False}},
        "nomTournee": f"T-{nom.split()[0].upper()}",
        "date": DAY,
        "poidsEnKg": 100.0,
    }


def build_demo_export() -> dict:
    taches = []
    tournees = []
    for prenom, nom, hub, notes, commentaires in DRIVERS:
        for i in range(10):
            notation = notes[i] if i < len(notes) else None
            taches.append(_tache(i, prenom, nom, hub, notation, commentaires.get(i)))
        tournees.append({
            "nom": f"T-{nom.split()[0].upper()}",
            "date": DAY,
            "nomHub": hub,
            "statut": "COMPLETED",
            "capacitePoids": 1250.0 if prenom != "Paul" else 900.0,
            "driver": {"firstName": prenom, "lastName": nom},
        })
    return {"taches": taches, "tournees": tournees}


def main():
    config = load_config()
    configure_logging(config)
    engine = get_engine(config["database"]["url"])
    init_db(engine)

    with session_scope(engine) as session:
        seed_rules(session, config)
        counts = ingest_export_json(session, build_demo_export())

    print(f"Demo data loaded: {counts['taches']} taches, {counts['tournees']} tournees.")


if __name__ == "__main__":
    main()
