from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from newsscraper.core.database import Base


class ArticleRecord(Base):
    """
    Exported news article, one row per URL.
    """
    __tablename__ = "article"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2000), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subtitle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    publication_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    full_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    full_text_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Provider name
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    exported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    keywords: Mapped[List["ArticleKeyword"]] = relationship(
        "ArticleKeyword",
        back_populates="article",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_article_source", "source"),
        Index("ix_article_publication_date", "publication_date"),
    )

    @property
    def keyword_set(self) -> set[str]:
        return {k.keyword for k in self.keywords}

    def __repr__(self) -> str:
        return f"<ArticleRecord(id={self.id}, source={self.source}, url={self.url})>"


class ArticleKeyword(Base):
    """Keyword an exported article was found by."""
    __tablename__ = "article_keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("article.id", ondelete="CASCADE"), nullable=False
    )
    keyword: Mapped[str] = mapped_column(String(200), nullable=False)

    article: Mapped["ArticleRecord"] = relationship("ArticleRecord", back_populates="keywords")

    __table_args__ = (
        UniqueConstraint("article_id", "keyword", name="uq_article_keyword"),
        Index("ix_article_keywords_keyword", "keyword"),
    )
