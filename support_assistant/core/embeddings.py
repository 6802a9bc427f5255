"""OpenAI embeddings generation with validation."""

from openai import AsyncOpenAI

from support_assistant.core.logging import get_logger

logger = get_logger(__name__)


class Embedder:
    """Query embedder bound to one OpenAI client, model and vector dimension.

    Instances are awaitable callables (``await embedder(text)``), the shape
    ``SupabaseVectorStore`` expects.
    """

    def __init__(self, client: AsyncOpenAI, model: str, dim: int):
        self._client = client
        self.model = model
        self.dim = dim

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors (each vector is list of floats)

        Raises:
            ValueError: If embedding dimension doesn't match the configured dim
            Exception: If OpenAI API call fails
        """
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(model=self.model, input=texts)
        except Exception as e:
            logger.error(f"Failed to generate embeddings: {e}")
            raise

        embeddings = []
        for i, embedding_obj in enumerate(response.data):
            embedding = embedding_obj.embedding
            if len(embedding) != self.dim:
                raise ValueError(
                    f"Embedding dimension mismatch for text {i}: "
                    f"expected {self.dim}, got {len(embedding)}"
                )
            embeddings.append(embedding)

        logger.debug(
            f"Generated {len(embeddings)} embeddings using {self.model}",
            extra={"extra_data": {"model": self.model, "count": len(embeddings)}},
        )
        return embeddings

    async def __call__(self, text: str) -> list[float]:
        vectors = await self.embed_texts([text])
        return vectors[0]
