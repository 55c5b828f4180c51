from apps.common.database import RoutineContract

# Listing: one page of product cards, then a single row holding ``total``.
PRODUCT_LIST = RoutineContract(
    name="[functional].[spProductList]",
    result_sets=("products", "total"),
)

# Detail: the product row followed by its images, flavors and sizes.
PRODUCT_GET = RoutineContract(
    name="[functional].[spProductGet]",
    result_sets=("productDetails", "images", "flavors", "sizes"),
)
