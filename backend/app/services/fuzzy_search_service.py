"""
Fuzzy product search against the local price guide

A query fans out to several store searches (exact, substring, first word,
digits removed, full text). Candidates are merged in that order, de-duplicated
by product id, scored by edit-distance similarity to the query and ranked.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from app.schemas.products import ProductRecord, RankedProduct
from app.services.product_store import ProductStore, SearchMode
from app.services.similarity import similarity

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2

_DIGITS = re.compile(r"\d+")


class FuzzySearchService:
    """Multi-strategy search with similarity ranking"""

    def __init__(
        self,
        store: ProductStore,
        strategy_limit: int = 50,
        similarity_floor: float = 0.3,
        default_limit: int = 20,
    ):
        self.store = store
        self.strategy_limit = strategy_limit
        self.similarity_floor = similarity_floor
        self.default_limit = default_limit

    @staticmethod
    def build_strategies(query: str) -> List[Tuple[str, str, SearchMode]]:
        """(name, term, mode) for every strategy whose term is non-empty"""
        term = query.strip().lower()
        words = term.split()
        first_word = words[0] if words else ""
        without_digits = _DIGITS.sub("", term).strip()

        strategies = [
            ("exact", term, SearchMode.EXACT),
            ("contains", term, SearchMode.CONTAINS),
            ("first_word", first_word, SearchMode.CONTAINS),
            ("without_digits", without_digits, SearchMode.CONTAINS),
            ("full_text", term, SearchMode.FULLTEXT),
        ]
        return [strategy for strategy in strategies if strategy[1]]

    async def _collect_candidates(self, query: str, category: Optional[str]) -> List[ProductRecord]:
        candidates: List[ProductRecord] = []
        for name, term, mode in self.build_strategies(query):
            try:
                rows = await self.store.search(term, mode, category=category, limit=self.strategy_limit)
            except Exception as e:
                logger.warning(f"Search strategy '{name}' failed for '{query}': {str(e)}")
                continue
            logger.debug(f"Strategy '{name}' returned {len(rows)} rows for '{term}'")
            candidates.extend(rows)
        return candidates

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        category: Optional[str] = None,
    ) -> List[RankedProduct]:
        """Ranked products whose names are similar to ``query``"""
        if not query or len(query.strip()) < MIN_QUERY_LENGTH:
            return []
        limit = self.default_limit if limit is None else limit

        unique: Dict[str, ProductRecord] = {}
        for row in await self._collect_candidates(query, category):
            unique.setdefault(row.product_id, row)

        ranked = []
        for row in unique.values():
            score = similarity(query, row.product_name)
            if score >= self.similarity_floor:
                ranked.append(RankedProduct.from_record(row, similarity_score=score))

        ranked.sort(key=lambda result: result.similarity_score, reverse=True)
        logger.info(f"Found {len(ranked)} results for '{query}' from {len(unique)} candidates")
        return ranked[:limit]

    async def best_match(
        self,
        name: str,
        floor: float,
        category: Optional[str] = None,
    ) -> Optional[RankedProduct]:
        """Top ranked product if it scores at least ``floor``"""
        results = await self.search(name, limit=1, category=category)
        if results and results[0].similarity_score >= floor:
            return results[0]
        return None
