"""Import every ORM model so ``Base.metadata`` knows all tables."""


def import_all_orm_models() -> None:
    import startupcall_kernel.models  # noqa: F401
    import startupcall_modules.applications.orm  # noqa: F401
    import startupcall_modules.budget.orm  # noqa: F401
    import startupcall_modules.calls.orm  # noqa: F401
    import startupcall_modules.reviews.orm  # noqa: F401
    import startupcall_modules.sponsorship.orm  # noqa: F401
