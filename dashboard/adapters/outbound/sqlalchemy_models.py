from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, Column, Integer, String, Float, DateTime, Text, Index,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Tache(Base):
    __tablename__ = "taches"

    id = Column(Integer, primary_key=True)
    tache_id = Column(String, nullable=False, unique=True)
    livreur_prenom = Column(String)
    livreur_nom = Column(String)
    livreur_id_externe = Column(String)
    prenom_chauffeur = Column(String)
    nom_chauffeur = Column(String)
    nom_hub = Column(String)
    progression = Column(String)
    status = Column(String)
    notation = Column(Float)
    commentaire = Column(Text)
    debut_creneau = Column(String)  # ISO 8601 string, nullable
    fin_creneau = Column(String)
    date_cloture = Column(String)
    complete_par = Column(String)
    adresse_correcte = Column(Boolean)
    sans_contact_force = Column(Boolean)
    nom_tournee = Column(String)
    date = Column(String)
    poids_kg = Column(Float)
    carrier_override = Column(String)
    date_ingestion = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_taches_hub", "nom_hub"),
        Index("idx_taches_tournee", "nom_tournee", "date"),
    )


class Tournee(Base):
    __tablename__ = "tournees"

    id = Column(Integer, primary_key=True)
    tournee_id = Column(String)
    nom = Column(String, nullable=False)
    date = Column(String)
    nom_hub = Column(String)
    statut = Column(String)
    capacite_poids = Column(Float)
    livreur_prenom = Column(String)
    livreur_nom = Column(String)
    livreur_id_externe = Column(String)
    carrier_override = Column(String)  # manual assignment, wins over rules
    date_ingestion = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_tournees_key", "nom", "date", "nom_hub", unique=True),
    )


class RegleDepot(Base):
    __tablename__ = "regles_depot"

    id = Column(Integer, primary_key=True)
    depot_name = Column(String, nullable=False)
    type = Column(String, default="warehouse")  # "warehouse" or "store"
    prefixes_json = Column(Text, nullable=False, default="[]")  # JSON array
    is_active = Column(Boolean, default=True)
    position = Column(Integer, default=0)  # evaluation order


class RegleTransporteur(Base):
    __tablename__ = "regles_transporteur"

    id = Column(Integer, primary_key=True)
    carrier = Column(String, nullable=False)
    type = Column(String, nullable=False)  # "suffix", "prefix" or "contains"
    value = Column(String, nullable=False)
    priority = Column(Integer, default=100)
    is_active = Column(Boolean, default=True)

    __table_args__ = (
        Index("idx_regles_transporteur_priority", "priority"),
    )


class RegleForecast(Base):
    __tablename__ = "regles_forecast"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # "time" or "type"
    keywords_json = Column(Text, nullable=False, default="[]")  # JSON array
    category = Column(String, nullable=False)  # "Matin", "Soir", "BU", "Classique"
    is_active = Column(Boolean, default=True)
