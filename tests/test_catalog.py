import uuid
from types import SimpleNamespace

import pytest

from storefront.core.errors import (
    Conflict,
    InvalidRequest,
    NotFound,
    PreconditionFailed,
)
from storefront.core.slugs import ensure_unique_slug, slugify
from storefront.core.tree import build_tree
from storefront.schemas.category import CategoryCreate, CategoryUpdate
from storefront.schemas.product import ProductCreate, ProductFilter, ProductUpdate, VariantIn


def _node(id, parent_id=None):
    return SimpleNamespace(id=id, parent_id=parent_id)


class TestBuildTree:
    def test_children_are_nested_under_parents(self):
        records = [_node("a"), _node("b", "a"), _node("c", "b"), _node("d")]
        roots = build_tree(records, lambda r: r.id, lambda r: r.parent_id)

        assert [r["record"].id for r in roots] == ["a", "d"]
        (b,) = roots[0]["children"]
        assert b["record"].id == "b"
        assert [c["record"].id for c in b["children"]] == ["c"]

    def test_orphans_are_dropped(self):
        records = [_node("a"), _node("x", "missing")]
        roots = build_tree(records, lambda r: r.id, lambda r: r.parent_id)
        assert [r["record"].id for r in roots] == ["a"]
        assert roots[0]["children"] == []

    def test_child_listed_before_parent(self):
        records = [_node("b", "a"), _node("a")]
        roots = build_tree(records, lambda r: r.id, lambda r: r.parent_id)
        assert roots[0]["children"][0]["record"].id == "b"


class TestSlugs:
    def test_slugify(self):
        assert slugify("  Summer Dresses & Skirts! ") == "summer-dresses-skirts"

    def test_slugify_fallback(self):
        assert slugify("!!!", fallback="product") == "product"

    def test_unique_slug_appends_counter(self):
        taken = {"shirt", "shirt-2"}
        assert ensure_unique_slug("shirt", lambda s: s in taken) == "shirt-3"


class TestCategoryService:
    def test_create_root_and_child_levels(self, session, services):
        root = services.category.create_category(session, CategoryCreate(name="Clothing"))
        child = services.category.create_category(
            session, CategoryCreate(name="Dresses", parent_id=root.id)
        )
        assert root.slug == "clothing"
        assert root.level == 1
        assert child.level == 2

    def test_duplicate_name_conflicts(self, session, services):
        services.category.create_category(session, CategoryCreate(name="Shoes"))
        with pytest.raises(Conflict):
            services.category.create_category(session, CategoryCreate(name="shoes"))

    def test_missing_parent(self, session, services):
        with pytest.raises(NotFound):
            services.category.create_category(
                session, CategoryCreate(name="Orphan", parent_id=uuid.uuid4())
            )

    def test_tree_skips_inactive_categories(self, session, services, make_category):
        top = make_category(name="Top")
        make_category(name="Visible", parent_id=top.id, level=2)
        hidden = make_category(name="Hidden", is_active=False)
        make_category(name="Under Hidden", parent_id=hidden.id, level=2)

        tree = services.category.get_tree(session)

        assert [n.name for n in tree] == ["Top"]
        assert [n.name for n in tree[0].subcategories] == ["Visible"]

    def test_self_parent_is_rejected(self, session, services, make_category):
        category = make_category(name="Loop")
        with pytest.raises(InvalidRequest):
            services.category.update_category(
                session, category.id, CategoryUpdate(parent_id=category.id)
            )

    def test_cycle_is_rejected(self, session, services, make_category):
        a = make_category(name="A")
        b = make_category(name="B", parent_id=a.id, level=2)
        with pytest.raises(InvalidRequest):
            services.category.update_category(session, a.id, CategoryUpdate(parent_id=b.id))

    def test_move_to_root(self, session, services, make_category):
        a = make_category(name="Parent")
        b = make_category(name="Child", parent_id=a.id, level=2)
        moved = services.category.update_category(session, b.id, CategoryUpdate(parent_id=None))
        assert moved.parent_id is None
        assert moved.level == 1

    def test_rename_reslugs(self, session, services, make_category):
        category = make_category(name="Old Name", slug="old-name")
        renamed = services.category.update_category(
            session, category.id, CategoryUpdate(name="New Name")
        )
        assert renamed.slug == "new-name"

    def test_delete_refused_with_children_or_products(
        self, session, services, make_category, make_product
    ):
        parent = make_category(name="Parent")
        make_category(name="Kid", parent_id=parent.id, level=2)
        with pytest.raises(PreconditionFailed):
            services.category.delete_category(session, parent.id)

        stocked = make_category(name="Stocked")
        make_product(category_id=stocked.id)
        with pytest.raises(PreconditionFailed):
            services.category.delete_category(session, stocked.id)

    def test_detail_lists_subcategories_and_active_products(
        self, session, services, make_category, make_product
    ):
        parent = make_category(name="Bags")
        make_category(name="Totes", parent_id=parent.id, level=2)
        make_product(category_id=parent.id)
        make_product(category_id=parent.id, status="draft")

        detail = services.category.get_category_detail(session, parent.id)

        assert [c.name for c in detail.subcategories] == ["Totes"]
        assert len(detail.products) == 1


class TestProductService:
    def test_create_generates_unique_slug(self, session, services):
        first = services.product.create_product(
            session, ProductCreate(name="Linen Shirt", price=30, sku="LS-1")
        )
        second = services.product.create_product(
            session, ProductCreate(name="Linen Shirt", price=30, sku="LS-2")
        )
        assert first.slug == "linen-shirt"
        assert second.slug == "linen-shirt-2"

    def test_duplicate_sku_conflicts(self, session, services, make_product):
        make_product(sku="DUP-1")
        with pytest.raises(Conflict):
            services.product.create_product(
                session, ProductCreate(name="Other", price=10, sku="DUP-1")
            )

    def test_create_with_variants(self, session, services):
        detail = services.product.create_product(
            session,
            ProductCreate(
                name="Tee",
                price=15,
                sku="TEE",
                variants=[VariantIn(sku="TEE-S", size="S", price=15, stock=3)],
            ),
        )
        assert [v.sku for v in detail.variants] == ["TEE-S"]

    def test_update_replaces_variants_and_patches_fields(self, session, services, make_product, make_variant):
        product = make_product(price=10)
        make_variant(product, sku="OLD")

        detail = services.product.update_product(
            session,
            product.id,
            ProductUpdate(price=12.5, variants=[VariantIn(sku="NEW", price=12.5)]),
        )

        assert detail.price == 12.5
        assert detail.name == product.name
        assert [v.sku for v in detail.variants] == ["NEW"]

    def test_listing_filters_and_sorts(self, session, services, make_product):
        make_product(name="Cheap", price=5)
        make_product(name="Mid", price=50, featured=True)
        make_product(name="Pricey", price=500)
        make_product(name="Hidden", price=50, status="draft")

        result = services.product.list_products(
            session, ProductFilter(min_price=10, sort="price", order="asc")
        )
        assert [p.name for p in result.products] == ["Mid", "Pricey"]
        assert result.pagination.total == 2

        featured = services.product.list_products(session, ProductFilter(featured=True))
        assert [p.name for p in featured.products] == ["Mid"]

    def test_search_requires_query(self, session, services):
        with pytest.raises(InvalidRequest):
            services.product.search_products(session, "   ")

    def test_search_matches_active_products(self, session, services, make_product):
        make_product(name="Silk Scarf")
        make_product(name="Silk Draft", status="draft")
        make_product(name="Wool Hat")

        found = services.product.search_products(session, "silk")

        assert [p.name for p in found] == ["Silk Scarf"]

    def test_related_products(self, session, services, make_category, make_product):
        category = make_category(name="Hats")
        base = make_product(category_id=category.id)
        for _ in range(5):
            make_product(category_id=category.id)
        make_product(category_id=category.id, status="archived")
        make_product()

        related = services.product.related_products(session, base.id)

        assert len(related) == 4
        assert all(p.category_id == category.id and p.id != base.id for p in related)
        assert all(p.status == "active" for p in related)

    def test_delete_removes_variants(self, session, services, make_product, make_variant):
        product = make_product()
        make_variant(product)
        product_id = product.id

        services.product.delete_product(session, product_id)

        with pytest.raises(NotFound):
            services.product.get_product(session, product_id)
        assert services.product.repo.list_variants(session, product_id) == []

    def test_hero_image_rejects_unknown_type(self, session, services, make_product):
        product = make_product()
        with pytest.raises(InvalidRequest):
            services.product.set_hero_image(session, product.id, "image/gif", b"GIF89a")

    def test_hero_image_upload(self, session, services, make_product, monkeypatch):
        product = make_product()
        uploaded = {}

        def fake_upload(path, file_bytes, content_type):
            uploaded["path"] = path
            return f"https://cdn.example.com/{path}"

        monkeypatch.setattr("storefront.services.product_service.upload_to_storage", fake_upload)

        updated = services.product.set_hero_image(session, product.id, "image/png", b"\x89PNG")

        assert uploaded["path"] == f"products/{product.id}/hero.png"
        assert updated.hero_image_url.endswith("hero.png")
