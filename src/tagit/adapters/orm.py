"""
Table SQL du stockage clé-valeur.

Le stockage ne connaît que des clés et des textes sérialisés :
chaque collection (déposants, articles, panier, ventes) tient
dans une seule ligne. Les noms de colonnes restent en ASCII.
"""

from sqlalchemy import Column, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

metadata = MetaData()

stockage = Table(
    "stockage",
    metadata,
    Column("cle", String(255), primary_key=True),
    Column("valeur", Text, nullable=False),
)


def créer_tables(engine: Engine) -> None:
    """Crée la table de stockage si elle n'existe pas encore."""
    metadata.create_all(engine)
