"""Content tables created inside every tenant namespace.

The tables are declared with SQLAlchemy Core against a per-tenant
``MetaData(schema=namespace)``, and ``schema_statements`` turns them into
an ordered list of idempotent DDL statements. Nothing here touches a
database, so the DDL can be compiled and inspected in isolation.
"""

from dataclasses import dataclass

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.schema import (
    CreateIndex,
    CreateSchema,
    CreateTable,
    DropSchema,
    ExecutableDDLElement,
)


@dataclass(frozen=True)
class TenantTables:
    """Handles to one tenant's content tables."""

    metadata: MetaData
    options: Table
    users: Table
    usermeta: Table
    posts: Table
    postmeta: Table
    terms: Table
    term_taxonomy: Table
    term_relationships: Table
    termmeta: Table
    comments: Table
    commentmeta: Table
    links: Table


def _meta_table(name: str, owner_column: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("meta_id", BigInteger, primary_key=True, autoincrement=True),
        Column(owner_column, BigInteger, nullable=False, server_default="0"),
        Column("meta_key", String(255), nullable=True),
        Column("meta_value", Text, nullable=True),
        Index(f"ix_{name}_{owner_column}", owner_column),
        Index(f"ix_{name}_meta_key", "meta_key"),
    )


def tenant_tables(namespace: str) -> TenantTables:
    """Declare the content tables inside ``namespace``."""
    metadata = MetaData(schema=namespace)

    options = Table(
        "options",
        metadata,
        Column("option_id", BigInteger, primary_key=True, autoincrement=True),
        Column("option_name", String(191), nullable=False, unique=True),
        Column("option_value", Text, nullable=False, server_default=""),
        Column("autoload", String(20), nullable=False, server_default="yes"),
    )

    users = Table(
        "users",
        metadata,
        Column("id", BigInteger, primary_key=True, autoincrement=True),
        Column("user_login", String(60), nullable=False, unique=True),
        Column("user_pass", String(255), nullable=False),
        Column("user_nicename", String(50), nullable=False),
        Column("user_email", String(100), nullable=False),
        Column("user_url", String(100), nullable=False, server_default=""),
        Column("user_registered", DateTime(timezone=True), server_default=func.now()),
        Column("user_activation_key", String(255), nullable=False, server_default=""),
        Column("user_status", Integer, nullable=False, server_default="0"),
        Column("display_name", String(250), nullable=False, server_default=""),
        Index("ix_users_user_email", "user_email"),
    )

    usermeta = Table(
        "usermeta",
        metadata,
        Column("umeta_id", BigInteger, primary_key=True, autoincrement=True),
        Column("user_id", BigInteger, nullable=False, server_default="0"),
        Column("meta_key", String(255), nullable=True),
        Column("meta_value", Text, nullable=True),
        Index("ix_usermeta_user_id", "user_id"),
        Index("ix_usermeta_meta_key", "meta_key"),
    )

    posts = Table(
        "posts",
        metadata,
        Column("id", BigInteger, primary_key=True, autoincrement=True),
        Column("post_author", BigInteger, nullable=False, server_default="0"),
        Column("post_date", DateTime(timezone=True), server_default=func.now()),
        Column("post_content", Text, nullable=False, server_default=""),
        Column("post_title", Text, nullable=False, server_default=""),
        Column("post_excerpt", Text, nullable=False, server_default=""),
        Column("post_status", String(20), nullable=False, server_default="publish"),
        Column("comment_status", String(20), nullable=False, server_default="open"),
        Column("ping_status", String(20), nullable=False, server_default="open"),
        Column("post_name", String(200), nullable=False, server_default=""),
        Column("post_modified", DateTime(timezone=True), server_default=func.now()),
        Column("post_parent", BigInteger, nullable=False, server_default="0"),
        Column("guid", String(255), nullable=False, server_default=""),
        Column("menu_order", Integer, nullable=False, server_default="0"),
        Column("post_type", String(20), nullable=False, server_default="post"),
        Column("comment_count", BigInteger, nullable=False, server_default="0"),
        Index("ix_posts_post_name", "post_name"),
        Index("ix_posts_type_status_date", "post_type", "post_status", "post_date"),
        Index("ix_posts_post_author", "post_author"),
    )

    postmeta = _meta_table("postmeta", "post_id", metadata)

    terms = Table(
        "terms",
        metadata,
        Column("term_id", BigInteger, primary_key=True, autoincrement=True),
        Column("name", String(200), nullable=False, server_default=""),
        Column("slug", String(200), nullable=False, server_default=""),
        Column("term_group", BigInteger, nullable=False, server_default="0"),
        Index("ix_terms_slug", "slug"),
    )

    term_taxonomy = Table(
        "term_taxonomy",
        metadata,
        Column("term_taxonomy_id", BigInteger, primary_key=True, autoincrement=True),
        Column("term_id", BigInteger, nullable=False, server_default="0"),
        Column("taxonomy", String(32), nullable=False, server_default=""),
        Column("description", Text, nullable=False, server_default=""),
        Column("parent", BigInteger, nullable=False, server_default="0"),
        Column("count", BigInteger, nullable=False, server_default="0"),
        Index("ix_term_taxonomy_term_id_taxonomy", "term_id", "taxonomy", unique=True),
    )

    term_relationships = Table(
        "term_relationships",
        metadata,
        Column("object_id", BigInteger, primary_key=True),
        Column("term_taxonomy_id", BigInteger, primary_key=True),
        Column("term_order", Integer, nullable=False, server_default="0"),
        Index("ix_term_relationships_term_taxonomy_id", "term_taxonomy_id"),
    )

    termmeta = _meta_table("termmeta", "term_id", metadata)

    comments = Table(
        "comments",
        metadata,
        Column("comment_id", BigInteger, primary_key=True, autoincrement=True),
        Column("comment_post_id", BigInteger, nullable=False, server_default="0"),
        Column("comment_author", Text, nullable=False, server_default=""),
        Column("comment_author_email", String(100), nullable=False, server_default=""),
        Column("comment_author_url", String(200), nullable=False, server_default=""),
        Column("comment_author_ip", String(100), nullable=False, server_default=""),
        Column("comment_date", DateTime(timezone=True), server_default=func.now()),
        Column("comment_content", Text, nullable=False, server_default=""),
        Column("comment_approved", String(20), nullable=False, server_default="1"),
        Column("comment_type", String(20), nullable=False, server_default="comment"),
        Column("comment_parent", BigInteger, nullable=False, server_default="0"),
        Column("user_id", BigInteger, nullable=False, server_default="0"),
        Index("ix_comments_comment_post_id", "comment_post_id"),
        Index("ix_comments_approved_date", "comment_approved", "comment_date"),
    )

    commentmeta = _meta_table("commentmeta", "comment_id", metadata)

    links = Table(
        "links",
        metadata,
        Column("link_id", BigInteger, primary_key=True, autoincrement=True),
        Column("link_url", String(255), nullable=False, server_default=""),
        Column("link_name", String(255), nullable=False, server_default=""),
        Column("link_target", String(25), nullable=False, server_default=""),
        Column("link_description", String(255), nullable=False, server_default=""),
        Column("link_visible", String(20), nullable=False, server_default="Y"),
        Column("link_owner", BigInteger, nullable=False, server_default="1"),
        Column("link_rating", Integer, nullable=False, server_default="0"),
        Column("link_notes", Text, nullable=False, server_default=""),
        Index("ix_links_link_visible", "link_visible"),
    )

    return TenantTables(
        metadata=metadata,
        options=options,
        users=users,
        usermeta=usermeta,
        posts=posts,
        postmeta=postmeta,
        terms=terms,
        term_taxonomy=term_taxonomy,
        term_relationships=term_relationships,
        termmeta=termmeta,
        comments=comments,
        commentmeta=commentmeta,
        links=links,
    )


def schema_statements(namespace: str) -> list[ExecutableDDLElement]:
    """Ordered, idempotent DDL that creates a tenant namespace.

    Every statement uses ``IF NOT EXISTS`` so a partially created
    namespace can be completed by running the list again.
    """
    tables = tenant_tables(namespace)
    statements: list[ExecutableDDLElement] = [CreateSchema(namespace, if_not_exists=True)]
    for table in tables.metadata.sorted_tables:
        statements.append(CreateTable(table, if_not_exists=True))
    for table in tables.metadata.sorted_tables:
        for index in sorted(table.indexes, key=lambda ix: ix.name or ""):
            statements.append(CreateIndex(index, if_not_exists=True))
    return statements


def drop_statement(namespace: str) -> DropSchema:
    """DDL removing a namespace and everything in it, if present."""
    return DropSchema(namespace, cascade=True, if_exists=True)
