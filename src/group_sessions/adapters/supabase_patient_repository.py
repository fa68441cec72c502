"""Supabase lookup of patient profiles."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from group_sessions.services.enrollment import PatientDirectory


@dataclass
class SupabasePatientRepository(PatientDirectory):
    """Checks the patient_profiles table for enrollment eligibility."""

    client: Client

    def is_patient(self, user_id: UUID) -> bool:
        """Return true when a patient profile exists for the user."""
        response = (
            self.client.table("patient_profiles")
            .select("user_id")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        return bool(response.data)
