from .models import HouseholdMembership


def get_current_membership(request):
    if not request.user.is_authenticated:
        return None

    membership = (
        HouseholdMembership.objects.select_related("household")
        .filter(user=request.user, is_primary=True)
        .first()
    )
    if membership:
        return membership

    return (
        HouseholdMembership.objects.select_related("household")
        .filter(user=request.user)
        .first()
    )


def household_owners(household):
    return (
        HouseholdMembership.objects.select_related("user")
        .filter(household=household, role=HouseholdMembership.Role.OWNER)
        .order_by("id")
    )
