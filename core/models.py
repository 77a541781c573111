from django.db import models

from .exceptions import ImmutableFieldViolation


class SnapshotModel(models.Model):
    """Rejects saves that alter fields frozen at creation time.

    ``immutable_fields`` lists the frozen fields; ``append_only = True``
    freezes every concrete field.
    """

    immutable_fields: tuple = ()
    append_only = False

    class Meta:
        abstract = True

    def _frozen_attnames(self):
        if self.append_only:
            return [f.attname for f in self._meta.concrete_fields if not f.primary_key]
        return [self._meta.get_field(name).attname for name in self.immutable_fields]

    def save(self, *args, **kwargs):
        if not self._state.adding and self.pk is not None:
            attnames = self._frozen_attnames()
            if attnames:
                stored = type(self)._default_manager.filter(pk=self.pk).values(*attnames).first()
                if stored is not None:
                    changed = [a for a in attnames if stored[a] != getattr(self, a)]
                    if changed:
                        raise ImmutableFieldViolation(
                            f"{self._meta.verbose_name} fields are finalized: {', '.join(changed)}",
                            fields=changed,
                        )
        super().save(*args, **kwargs)
