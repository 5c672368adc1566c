"""Tools over the user's uploaded documents."""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from agent.tools import Tool, NoArguments
from retrieval.vector_store import VectorStore

logger = logging.getLogger(__name__)


class SearchDocumentsArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(
        ...,
        min_length=1,
        description="The search query to find relevant document sections. Use natural language "
                    "describing what information you're looking for."
    )
    num_results: Optional[int] = Field(
        None,
        alias="numResults",
        ge=1,
        le=20,
        description="Number of relevant sections to return (default: 3)"
    )


class SearchDocumentsTool(Tool):
    """Semantic search over the caller's uploaded documents."""

    name = "search_my_documents"
    description = """Search through the CONTENT of the user's uploaded documents.
Use this whenever the user asks what a file contains, wants information from their files,
or mentions searching or reading their documents. Call it right away instead of saying you will check."""
    args_model = SearchDocumentsArgs

    def __init__(self, vector_store: VectorStore, default_results: int = 3):
        """
        Initialize search tool.

        Args:
            vector_store: Store holding every user's document chunks
            default_results: Sections returned when the model does not ask for a number
        """
        self.vector_store = vector_store
        self.default_results = default_results

    def execute(self, args: SearchDocumentsArgs, owner_id: Optional[int]) -> str:
        logger.info(f"Searching documents for owner {owner_id}: {args.query!r}")
        k = args.num_results or self.default_results
        results = self.vector_store.query_with_scores(args.query, owner_id, k)

        if not results:
            return (
                "No relevant documents found. The user may not have uploaded any files yet, "
                "or the search query didn't match any content."
            )

        sections = []
        for i, scored in enumerate(results, 1):
            chunk = scored.chunk
            upload_date = datetime.fromtimestamp(chunk.uploaded_at / 1000).strftime("%Y-%m-%d")
            sections.append("\n".join([
                f"[Document {i}: {chunk.source_file} (uploaded {upload_date}, relevance {scored.score:.2f})]",
                chunk.text.strip(),
                f"[Chunk {chunk.chunk_index + 1} of {chunk.total_chunks}]",
            ]))

        return f"Found {len(results)} relevant section(s):\n\n" + "\n\n---\n\n".join(sections)


class ListFilesTool(Tool):
    """Lists the caller's uploaded files."""

    name = "list_my_files"
    description = """List all files the user has uploaded.
Use this whenever the user asks which files or documents they have or what they uploaded."""
    args_model = NoArguments

    def __init__(self, vector_store: VectorStore):
        self.vector_store = vector_store

    def execute(self, args: NoArguments, owner_id: Optional[int]) -> str:
        files = sorted(self.vector_store.list_owned(owner_id))

        if not files:
            return "You haven't uploaded any files yet."

        file_list = "\n".join(f"{i}. {name}" for i, name in enumerate(files, 1))
        return f"You have {len(files)} uploaded file(s):\n{file_list}"
