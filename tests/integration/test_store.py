"""
Tests d'intégration du stockage SQLAlchemy avec SQLite en mémoire.

Ces tests vérifient que :
- le stockage clé-valeur lit, écrit et retire des textes
- les erreurs SQL sont converties en ErreurStockage
- un parcours complet (inscription, article, panier, encaissement)
  survit à un aller-retour par la base
"""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tagit.adapters.store import SqlAlchemyStore
from tagit.domain import commands
from tagit.domain.erreurs import ErreurStockage
from tagit.service_layer import bootstrap, unit_of_work
from tagit.views import views


class TestSqlAlchemyStore:
    def test_clé_absente(self, session_factory):
        assert SqlAlchemyStore(session_factory).get("articles") is None

    def test_écrire_puis_relire(self, session_factory):
        store = SqlAlchemyStore(session_factory)

        store.set("ventes", "[]")

        assert store.get("ventes") == "[]"

    def test_réécrire_remplace_la_valeur(self, session_factory):
        store = SqlAlchemyStore(session_factory)
        store.set("panier_temporaire", '[{"code": "AB31"}]')

        store.set("panier_temporaire", "[]")

        assert store.get("panier_temporaire") == "[]"

    def test_les_clés_sont_indépendantes(self, session_factory):
        store = SqlAlchemyStore(session_factory)
        store.set("articles", "[1]")
        store.set("depositors", "[2]")

        store.remove("articles")

        assert store.get("articles") is None
        assert store.get("depositors") == "[2]"

    def test_retirer_une_clé_absente(self, session_factory):
        SqlAlchemyStore(session_factory).remove("vente_en_cours")

    def test_texte_non_ascii(self, session_factory):
        store = SqlAlchemyStore(session_factory)

        store.set("depositors", '[{"prenom": "Éloïse"}]')

        assert store.get("depositors") == '[{"prenom": "Éloïse"}]'

    def test_erreur_sql_convertie_en_erreur_stockage(self):
        # Base sans la table de stockage
        store = SqlAlchemyStore(sessionmaker(bind=create_engine("sqlite://")))

        with pytest.raises(ErreurStockage) as excinfo:
            store.get("articles")
        assert excinfo.value.clé == "articles"

        with pytest.raises(ErreurStockage):
            store.set("articles", "[]")


class TestParcoursComplet:
    def test_de_l_inscription_à_l_encaissement(self, session_factory):
        uow = unit_of_work.StoreUnitOfWork(SqlAlchemyStore(session_factory))
        bus = bootstrap.bootstrap(start_orm=False, uow=uow, tirage=lambda: 3)

        déposant = bus.handle(commands.CréerDéposant("Alice", "Bernard", "0601020304"))[0]
        bus.handle(commands.EnregistrerArrivée(déposant.code))
        bus.handle(commands.CréerArticle(déposant.code, taille="M", sexe="F", prix="10"))
        bus.handle(commands.CréerArticle(déposant.code, taille="S", sexe="F", prix="5"))

        scan = views.résoudre_scan("ALB3-002", uow)
        assert scan.trouvé
        bus.handle(commands.AjouterAuPanier(scan.code))
        bus.handle(commands.AjouterAuPanier("ALB3-001"))
        bus.handle(commands.ModifierQuantitéPanier("ALB3-001", 1))
        assert views.panier(uow).total == Decimal("25")

        vente = bus.handle(commands.EncaisserVente())[0]

        assert vente.total == Decimal("25")
        assert [(l.code, l.quantité) for l in vente.lignes] == [("ALB3-002", 1), ("ALB3-001", 2)]
        assert views.panier(uow).lignes == []
        assert [v.id for v in views.ventes(uow)] == [vente.id]
        vendus = views.rechercher_articles(views.Critères(vendu="vendu"), uow)
        assert [a.code for a in vendus] == ["ALB3-001", "ALB3-002"]
        [avec_articles] = views.déposants(uow)
        assert avec_articles.déposant.arrivé
        assert avec_articles.nb_articles == 2
