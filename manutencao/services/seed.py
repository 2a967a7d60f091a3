import json
import logging
import os

from sqlmodel import Session, select

from manutencao.models import Part

logger = logging.getLogger(__name__)


def sync_parts_catalog(session: Session, path: str) -> int:
    """
    Insere no catálogo as correias do arquivo JSON que ainda não existem.

    O arquivo é uma lista de ``{"model": "A-42", "stock": 3, "size": "..."}``.
    Correias já cadastradas mantêm a quantidade atual; depois de criada, o
    estoque só muda pelas baixas e contagens. Arquivo ilegível ou item
    malformado é registrado no log e ignorado, sem impedir a subida do serviço.
    Devolve quantas correias foram inseridas.
    """
    if not path or not os.path.exists(path):
        return 0

    try:
        with open(path, encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("seed de correias ignorado, arquivo inválido (%s): %s", path, e)
        return 0
    if not isinstance(entries, list):
        logger.error("seed de correias ignorado, esperava uma lista em %s", path)
        return 0

    inserted = 0
    for item in entries:
        try:
            name = str(item.get("model") or "").strip()
            quantity = max(0, int(item.get("stock") or 0))
            minimum = max(0, int(item.get("minimum", 1)))
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("item do seed ignorado %r: %s", item, e)
            continue
        if not name:
            continue
        if session.exec(select(Part).where(Part.name == name)).first():
            continue
        session.add(Part(name=name, size=item.get("size"), quantity=quantity, minimum=minimum))
        inserted += 1

    session.commit()
    logger.info("catálogo de correias sincronizado: %s novas (%s)", inserted, path)
    return inserted
