from django.db import models

STATUS_CHOICES = (
    ("a", "Active"),
    ("i", "Inactive"),
)


class ActiveManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(status="a")


class Common(models.Model):
    # ---- Audit fields ----
    created_on = models.DateTimeField(auto_now_add=True)
    last_modified = models.DateTimeField(auto_now=True)

    # ---- Status / lifecycle ----
    status = models.CharField(
        max_length=1,
        choices=STATUS_CHOICES,
        default="a",
        db_index=True
    )

    objects = models.Manager()
    active = ActiveManager()

    class Meta:
        abstract = True
        ordering = ["-created_on"]
