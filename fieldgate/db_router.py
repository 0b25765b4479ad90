"""Route the audit app to its own database."""

AUDIT_APP_LABEL = "audit"
AUDIT_DB = "audit"


class AuditRouter:
    """Audit rows live in the "audit" database; everything else in "default"."""

    def db_for_read(self, model, **hints):
        if model._meta.app_label == AUDIT_APP_LABEL:
            return AUDIT_DB
        return None

    def db_for_write(self, model, **hints):
        if model._meta.app_label == AUDIT_APP_LABEL:
            return AUDIT_DB
        return None

    def allow_relation(self, obj1, obj2, **hints):
        # Audit rows store plain ids, never foreign keys
        if AUDIT_APP_LABEL in (obj1._meta.app_label, obj2._meta.app_label):
            return obj1._meta.app_label == obj2._meta.app_label
        return None

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label == AUDIT_APP_LABEL:
            return db == AUDIT_DB
        return db == "default"
