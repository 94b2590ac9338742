# apps/core/forms.py

from django import forms

from .exceptions import ValidationError
from .models import Task

FORMATOS_DATA = [
    '%Y-%m-%d',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%SZ',
    '%Y-%m-%dT%H:%M:%S.%fZ',
]


class TaskFormBase(forms.Form):
    """
    Base dos formulários de task

    Os dados chegam como JSON (dict), não como POST de formulário.
    Só os campos presentes no payload são devolvidos por dados_validos().
    """

    def dados_validos(self):
        """Valida e retorna apenas os campos enviados pelo cliente"""
        if not self.is_valid():
            detalhes = {
                campo: [str(erro) for erro in erros]
                for campo, erros in self.errors.items()
            }
            raise ValidationError('Dados inválidos', details=detalhes)

        return {
            campo: self.cleaned_data[campo]
            for campo in self.fields
            if campo in self.data
        }

    def clean_tags(self):
        """Tags: lista ordenada de strings, sem espaços nas pontas"""
        tags = self.cleaned_data.get('tags')
        if tags in (None, ''):
            return []
        if not isinstance(tags, list):
            raise forms.ValidationError('Tags devem ser uma lista')

        resultado = []
        for tag in tags:
            if not isinstance(tag, str):
                raise forms.ValidationError('Cada tag deve ser um texto')
            tag = tag.strip()
            if tag:
                resultado.append(tag)
        return resultado


class TaskCreateForm(TaskFormBase):
    """Criação de task"""

    title = forms.CharField(max_length=Task.TITLE_MAX_LENGTH)
    description = forms.CharField(max_length=Task.DESCRIPTION_MAX_LENGTH, required=False)
    board = forms.IntegerField(min_value=1)
    status = forms.ChoiceField(choices=Task.STATUS_CHOICES, required=False)
    priority = forms.ChoiceField(choices=Task.PRIORIDADE_CHOICES, required=False)
    assignedTo = forms.IntegerField(min_value=1, required=False)
    dueDate = forms.DateField(required=False, input_formats=FORMATOS_DATA)
    tags = forms.JSONField(required=False)

    def clean_status(self):
        return self.cleaned_data.get('status') or Task.STATUS_TODO

    def clean_priority(self):
        return self.cleaned_data.get('priority') or 'medium'

    def dados_validos(self):
        dados = super().dados_validos()
        # Na criação os padrões valem mesmo quando o campo não foi enviado
        dados.setdefault('status', Task.STATUS_TODO)
        dados.setdefault('priority', 'medium')
        dados.setdefault('tags', [])
        dados.setdefault('description', '')
        return dados


class TaskUpdateForm(TaskFormBase):
    """Atualização parcial - qualquer subconjunto dos campos"""

    title = forms.CharField(max_length=Task.TITLE_MAX_LENGTH, required=False)
    description = forms.CharField(max_length=Task.DESCRIPTION_MAX_LENGTH, required=False)
    status = forms.ChoiceField(choices=Task.STATUS_CHOICES, required=False)
    priority = forms.ChoiceField(choices=Task.PRIORIDADE_CHOICES, required=False)
    assignedTo = forms.IntegerField(min_value=1, required=False)
    dueDate = forms.DateField(required=False, input_formats=FORMATOS_DATA)
    tags = forms.JSONField(required=False)
    position = forms.IntegerField(min_value=0, required=False)

    def clean_title(self):
        title = self.cleaned_data.get('title')
        if 'title' in self.data and not title:
            raise forms.ValidationError('Título não pode ficar vazio')
        return title

    def clean_status(self):
        status = self.cleaned_data.get('status')
        if 'status' in self.data and not status:
            raise forms.ValidationError('Status inválido')
        return status

    def clean_priority(self):
        priority = self.cleaned_data.get('priority')
        if 'priority' in self.data and not priority:
            raise forms.ValidationError('Prioridade inválida')
        return priority

    def clean_position(self):
        position = self.cleaned_data.get('position')
        if 'position' in self.data and position is None:
            raise forms.ValidationError('Posição deve ser um inteiro não negativo')
        return position


class TaskMoveForm(TaskFormBase):
    """Reordenação explícita: status e posição obrigatórios"""

    status = forms.ChoiceField(choices=Task.STATUS_CHOICES)
    position = forms.IntegerField(min_value=0)


class TaskFiltroForm(TaskFormBase):
    """Filtros da listagem de tasks do board (query string)"""

    status = forms.ChoiceField(choices=Task.STATUS_CHOICES, required=False)
    assignedTo = forms.IntegerField(min_value=1, required=False)
    search = forms.CharField(max_length=Task.TITLE_MAX_LENGTH, required=False)

    def dados_validos(self):
        # Parâmetro vazio (?status=) equivale a não filtrar
        return {campo: valor for campo, valor in super().dados_validos().items() if valor not in (None, '')}
