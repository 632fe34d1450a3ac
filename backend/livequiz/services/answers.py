def _normalize(text: str) -> str:
    return text.strip().casefold()


def match_option(options, submitted_answer):
    """Find the option a submission refers to, by id first and then by text."""
    if submitted_answer is None:
        return None
    answer = str(submitted_answer)
    for key in ('id', 'text'):
        for option in options or []:
            if str(option.get(key)) == answer:
                return option
    return None


def validate(activation, submitted_answer) -> bool:
    """Decide whether ``submitted_answer`` is correct for ``activation``.

    multiple_choice compares exactly (option labels are controlled input) and
    accepts either the option's text or its id; text_answer compares trimmed,
    case-folded text. Polls have no correct answer and always come back False.
    """
    if submitted_answer is None:
        return False
    answer = str(submitted_answer)
    if activation.type == 'multiple_choice' and activation.correct_answer:
        if answer == activation.correct_answer:
            return True
        option = match_option(getattr(activation, 'options', None), answer)
        return option is not None and activation.correct_answer in (option.get('id'), option.get('text'))
    if activation.type == 'text_answer' and activation.exact_answer:
        return _normalize(answer) == _normalize(activation.exact_answer)
    return False
