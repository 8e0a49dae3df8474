"""
Field validators for users and jobs.
"""

import re
from django.core.exceptions import ValidationError


MAX_SKILLS = 30
MAX_SKILL_LENGTH = 50
MIN_PHONE_DIGITS = 10

PHONE_CHARS = re.compile(r'^[\d\s\-\+\(\)]+$')
SKILL_CHARS = re.compile(r'^[\w\s\+\#\.\/\-]+$')


def validate_phone_number(value):
    """
    Validate a contact number such as '+1 (416) 555-0199'.

    Blank is allowed. Otherwise only digits, spaces, dashes, parentheses
    and '+' may appear, with at least MIN_PHONE_DIGITS digits that are not
    all the same.

    Raises:
        ValidationError: If the number is malformed
    """
    if not value:
        return

    if not PHONE_CHARS.match(value):
        raise ValidationError(
            'Use only digits, spaces, dashes, parentheses and "+" in a phone number.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError(
            f'Phone number needs at least {MIN_PHONE_DIGITS} digits.',
            code='phone_too_short'
        )
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot repeat a single digit.',
            code='invalid_phone_pattern'
        )


def validate_skill_list(value):
    """
    Validate a comma separated list of skills.

    Checks:
    - At most 30 skills
    - Each skill at most 50 characters
    - Skills contain letters, digits, spaces and the characters + # . / -

    Args:
        value: Comma separated skills string

    Raises:
        ValidationError: If the list is invalid
    """
    if not value:
        return

    skills = [skill.strip() for skill in value.split(',') if skill.strip()]

    if len(skills) > MAX_SKILLS:
        raise ValidationError(
            f'At most {MAX_SKILLS} skills can be listed. Got {len(skills)}.',
            code='too_many_skills'
        )

    for skill in skills:
        if len(skill) > MAX_SKILL_LENGTH:
            raise ValidationError(
                f'Skill "{skill[:20]}..." exceeds {MAX_SKILL_LENGTH} characters.',
                code='skill_too_long'
            )
        if not SKILL_CHARS.match(skill):
            raise ValidationError(
                f'Skill "{skill}" contains invalid characters.',
                code='invalid_skill_chars'
            )
