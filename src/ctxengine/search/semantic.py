"""Semantic search collaborator interface and a local in-memory index.

The engine only depends on ``SemanticSearch``; any embedding service can
stand behind it. ``LocalSemanticIndex`` is a dependency-light default that
uses hashed bag-of-words TF-IDF vectors (numpy), no ML models. The index
is never persisted.
"""

from __future__ import annotations

import logging
import re
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from ctxengine.exceptions import CollaboratorError

logger = logging.getLogger("ctxengine.semantic")


@dataclass
class SimilarFragment:
    """One code fragment returned by similarity search."""

    path: str
    similarity: float
    fragment: str = ""


class SemanticSearch(ABC):
    """Narrow async interface to an embedding-based code search service."""

    @abstractmethod
    async def embed_query(self, text: str) -> np.ndarray:
        """Embed a query string."""

    @abstractmethod
    async def search_similar(
        self,
        project_id: str,
        vector: np.ndarray,
        limit: int = 10,
        threshold: float = 0.4,
    ) -> list[SimilarFragment]:
        """Top fragments whose similarity to ``vector`` is at least ``threshold``."""


def _tokenize(text: str) -> list[str]:
    """Simple tokenizer that splits on non-alphanumeric and camelCase."""
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    text = text.replace("_", " ").replace(".", " ")
    return re.findall(r"[a-zA-Z]{2,}", text.lower())


@dataclass
class _ProjectIndex:
    paths: list[str]
    fragments: list[str]
    matrix: np.ndarray  # (n_fragments, dim), rows L2-normalised
    idf: np.ndarray


class LocalSemanticIndex(SemanticSearch):
    """Hashed TF-IDF index over fixed-size line windows.

    Identical fragments (boilerplate repeated across files) are indexed once
    per file, detected with a cheap adler32 checksum.
    """

    def __init__(self, dim: int = 2048, window_lines: int = 40) -> None:
        self.dim = dim
        self.window_lines = window_lines
        self._projects: dict[str, _ProjectIndex] = {}

    def _hash_vector(self, tokens: list[str]) -> np.ndarray:
        vec = np.zeros(self.dim)
        for token in tokens:
            vec[zlib.crc32(token.encode()) % self.dim] += 1
        return vec

    def _chunks(self, content: str) -> list[str]:
        lines = content.splitlines()
        return [
            "\n".join(lines[i : i + self.window_lines])
            for i in range(0, len(lines), self.window_lines)
        ]

    def index_project(self, project_id: str, files: dict[str, str]) -> int:
        """(Re)build the index for a project. Returns the fragment count."""
        paths: list[str] = []
        fragments: list[str] = []
        seen: set[tuple[str, int]] = set()

        for path, content in sorted(files.items()):
            # The path itself carries signal ("PlayerSprite.tsx")
            for chunk in self._chunks(content):
                key = (path, zlib.adler32(" ".join(chunk.split()).encode()))
                if key in seen or not chunk.strip():
                    continue
                seen.add(key)
                paths.append(path)
                fragments.append(f"{path}\n{chunk}")

        if not fragments:
            self._projects.pop(project_id, None)
            return 0

        counts = np.vstack([self._hash_vector(_tokenize(f)) for f in fragments])
        doc_freq = (counts > 0).sum(axis=0)
        n_docs = len(fragments)
        idf = np.log((1 + n_docs) / (1 + doc_freq)) + 1.0

        weighted = counts * idf
        norms = np.linalg.norm(weighted, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        self._projects[project_id] = _ProjectIndex(
            paths=paths, fragments=fragments, matrix=weighted / norms, idf=idf
        )
        logger.debug(f"Indexed {n_docs} fragments for {project_id}")
        return n_docs

    def has_project(self, project_id: str) -> bool:
        return project_id in self._projects

    def drop_project(self, project_id: str) -> None:
        self._projects.pop(project_id, None)

    async def embed_query(self, text: str) -> np.ndarray:
        return self._hash_vector(_tokenize(text))

    async def search_similar(
        self,
        project_id: str,
        vector: np.ndarray,
        limit: int = 10,
        threshold: float = 0.4,
    ) -> list[SimilarFragment]:
        index = self._projects.get(project_id)
        if index is None:
            return []

        query = np.asarray(vector, dtype=float)
        if query.shape != index.idf.shape:
            raise CollaboratorError(
                "semantic", f"query vector has shape {query.shape}, index expects {index.idf.shape}"
            )
        query = query * index.idf
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        sims = index.matrix @ (query / norm)

        order = np.argsort(-sims)
        results: list[SimilarFragment] = []
        for i in order[:limit]:
            sim = float(sims[i])
            if sim < threshold:
                break
            results.append(SimilarFragment(index.paths[i], sim, index.fragments[i]))
        return results
