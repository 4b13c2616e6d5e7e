"""Static defect code table grouped by category."""

from __future__ import annotations

from typing import Dict

DEFECT_CODES_BY_CATEGORY: Dict[str, Dict[str, str]] = {
    "Connexion / Encliquetage": {
        "101": "Connexion non encliquetée",
        "102": "Connexion mal orientée dans l'alvéole",
        "103": "Connexion déformée",
        "104": "Bavure, crique, cassure,...",
        "105": "Connexion écrasée",
        "106": "Lance à plat",
        "107": "Connexion cassée",
        "108": "Connexion coupée",
        "109": "Connexion oxydée",
        "110": "Corps étranger dans connexion",
        "111": "Mauvaise connexion",
        "199": "Autres",
    },
    "Fils": {
        "201": "Fils brûlés",
        "202": "Fils blessés",
        "203": "Section NC",
        "204": "Couleur NC",
        "205": "Longueur NC",
        "206": "Matière de l'isolant",
        "207": "Immobilisation NC",
        "208": "Cuivre apparent",
        "209": "Fils cassé / coupé",
        "210": "Fils inversé",
        "299": "Autres",
    },
    "Sertissage": {
        "301": "Ailettes non jointives",
        "302": "Ailettes retournées",
        "303": "Sertissage partiel",
        "304": "Sertissage sur isolant",
        "305": "Témoin de découpe NC",
        "306": "Tenue NC en traction",
        "307": "Isolant hors ailettes",
        "308": "Référence connexion NC",
        "309": "Brins hors ailettes",
        "310": "Coupe nette",
        "311": "Cuivre hors ailettes",
        "312": "Papier dans sertissage",
        "399": "Autres",
    },
    "Sertissage Jumelage/Double départ/Mariage": {
        "301B": "Ailettes non jointives",
        "302B": "Ailettes retournées",
        "303B": "Sertissage partiel",
        "304B": "Sertissage sur isolant",
        "305B": "Témoin de découpe NC",
        "306B": "Tenue NC en traction",
        "307B": "Isolant hors ailettes",
        "308B": "Référence connexion NC",
        "309B": "Brins hors ailettes",
        "310B": "Coupe nette",
        "311B": "Cuivre hors ailettes",
        "312B": "Papier dans sertissage",
    },
    "Epissures": {
        "401": "Manque fil",
        "402": "Erreur ou fil en double",
        "403": "Mauvais positionnenement des brins / Soudure",
        "404": "Manchon percé par brins / mal positionné",
        "405": "Erreur de manchon",
        "406": "Manchon trop ou pas assez rétreint",
        "407": "Non étanche",
        "408": "Fil brûlé",
        "409": "Fil arraché / cassé",
        "499": "Autres",
    },
    "Joint": {
        "501": "Détérioré, inversé",
        "502": "Erreur de joint",
        "599": "Autres",
    },
    "Connecteur": {
        "601": "Grille non verrouillée",
        "602": "Erreur de connecteur",
        "603": "Manque matière",
        "604": "Couvercle / verrou mal positionné, détérioré ou manquant",
        "605": "Boîtier détérioré",
        "606": "Erreur fusible",
        "607": "Inversion connecteur",
        "608": "Immobilisation connecteur",
        "609": "Manque protection connecteur (sachet, manchon,...)",
        "610": "Mauvais Encliquetage fusible",
        "611": "Erreur relais, centrale clignotante",
        "612": "Boitier non-conforme (fournisseur)",
        "613": "Corps étranger dans connecteur (joint…)",
        "699": "Autres",
    },
    "Géométrie": {
        "701": "Dérivation Toron Principal NC",
        "702": "Dérivation Toron Secondaire NC",
        "703": "Position boîtier NC",
        "704": "Position bague NC",
        "705": "Position rubannage NC",
        "706": "Position ligature NC",
        "707": "Position manchon NC",
        "708": "Position pion",
        "709": "Position goulotte",
        "799": "Autres",
    },
    "Hygiène": {
        "801": "Fils tendus",
        "802": "Mauvais peignage",
        "803": "Erreur de ruban",
        "804": "Rubannage : recouvrement trop important, trop faible",
        "805": "Rubannage non prévu",
        "899": "Autres",
    },
    "Identification": {
        "901": "Référence Câblage NC",
        "902": "Manque étiquette",
        "903": "Indice de modification NC",
        "904": "Etiquette d'identification mal positionnée/déchirée",
        "905": "Repére mal positionné",
        "906": "Code Barre mal positionné",
        "999": "Autres",
    },
    "Surmoulage": {
        "1001": "Manque matière",
        "1002": "Bague à l'envers",
        "1003": "Déformé, bavure",
        "1004": "Dureté hors tolérance",
        "1005": "Position hors tolérance, connexion reculée",
        "1006": "Bague NC",
        "1007": "Erreur de référence",
        "1008": "Fil pincé",
        "1099": "Autres",
    },
    "Locating / agrafe / pion / goulotte": {
        "1101": "Inversée",
        "1102": "Non conforme",
        "1103": "Cassée",
        "1104": "Manque matière",
        "1105": "Mal positionné",
        "1106": "Mauvais maintien",
        "1107": "Collier / Rilsan non coupé",
        "1199": "Autres",
    },
    "Conditionnement": {
        "1201": "Câblage mal disposé",
        "1202": "Conditionnement NC (erreur, manque, aspect,...)",
        "1203": "GALIA : erreur, manque, impression",
        "1204": "Erreur de quantité",
        "1205": "Mélange de faisceaux dans conditionnement",
        "1299": "Autres",
    },
    "Protection": {
        "1301": "Non enmanchée",
        "1302": "Matière NC",
        "1303": "Longueur NC",
        "1304": "Diamètre NC",
        "1305": "Immobilisation NC (Protection mal fixée)",
        "1306": "Fils hors protection",
        "1307": "Protection détériorée, déformée, inversée",
        "1399": "Autres",
    },
    "Manchon": {
        "1401": "Manchon Non cuit",
        "1402": "Manchon NC (détérioré, matière,...)",
        "1403": "Rétreint NC",
        "1404": "Non étanche",
        "1405": "Manchon mal positionné",
        "1499": "Autres",
    },
    "Ligatures": {
        "1501": "Erreur de référence (Type, couleur, largeur)",
        "1502": "Non prévu",
        "1503": "Non serré",
        "1599": "Autres",
    },
    "Manque élément": {
        "1601": "Manque fil",
        "1602": "Manque connecteur",
        "1603": "Manque fusibles",
        "1604": "Manque centrale clignotante, relais",
        "1605": "Manque locating, agrafe, pion",
        "1606": "Manque connexion",
        "1607": "Manque manchon",
        "1608": "Manque étiquette",
        "1609": "Manque protection",
        "1610": "Manque épissure",
        "1611": "Manque ligature",
        "1612": "Manque rubannage",
        "1613": "Manque surmoulage",
        "1614": "Manque joint",
        "1615": "Manque repére",
        "1616": "Manque grille",
        "1617": "Manque vis",
        "1618": "Manque bouchon étanchéité",
        "1699": "Autres",
    },
    "Divers": {
        "1701": "Réponses hors délais",
        "1799": "Divers",
    },
}

DEFECT_CODES: Dict[str, str] = {
    code: name
    for codes in DEFECT_CODES_BY_CATEGORY.values()
    for code, name in codes.items()
}

CATEGORIES = tuple(DEFECT_CODES_BY_CATEGORY)


def defect_name(code: str | None) -> str | None:
    """Return the human readable name for ``code`` when it is known."""

    if code is None:
        return None
    return DEFECT_CODES.get(str(code).strip())


def category_for_code(code: str | None) -> str | None:
    """Return the category that lists ``code``."""

    if code is None:
        return None
    key = str(code).strip()
    for category, codes in DEFECT_CODES_BY_CATEGORY.items():
        if key in codes:
            return category
    return None
