import click


class CLIException(click.ClickException):
    """
    Базовое исключение, которое умеет показать себя в CLI (click сам печатает
    сообщение и завершает процесс с exit_code).
    """

    exit_code = 1

    def __init__(self, *args, description: str = "Something happend..."):
        super().__init__(description)
        self.description = description
        self.details = args
