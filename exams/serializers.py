# cbt_platform/exams/serializers.py
from rest_framework import serializers

from .models import Exam, Question, Option

# --- Helper Serializers ---


class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'text', 'is_correct']


class OptionInputSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=255)
    is_correct = serializers.BooleanField(default=False)


# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    """Question bank entry as seen by teachers (answer key included)."""
    # Map frontend 'question_text' to backend 'text'
    question_text = serializers.CharField(source='text')
    # Options come in as [{"text": ..., "is_correct": ...}]; plain strings are matched against correct_answer
    options = serializers.ListField(child=serializers.JSONField(), required=False, write_only=True)
    correct_answer = serializers.CharField(required=False, allow_blank=True, write_only=True)
    options_data = OptionSerializer(source='options', many=True, read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'question_text', 'question_type', 'difficulty', 'marks',
            'options', 'correct_answer', 'options_data', 'created_at',
        ]
        read_only_fields = ['created_at']

    def validate_marks(self, value):
        if value < 1:
            raise serializers.ValidationError("Marks must be a positive integer.")
        return value

    def validate(self, attrs):
        if self.instance is not None and self._changes_grading(attrs) and self.instance.has_graded_attempts():
            raise serializers.ValidationError(
                "This question has graded attempts; its marks and answers can no longer change."
            )

        q_type = attrs.get('question_type', getattr(self.instance, 'question_type', Question.QuestionType.MCQ))
        raw_options = attrs.pop('options', None)
        correct_answer = attrs.pop('correct_answer', None)

        if self.instance is not None and raw_options is None and correct_answer is None:
            if q_type != self.instance.question_type:
                raise serializers.ValidationError("Changing question_type requires new options.")
            attrs['_options'] = None
            return attrs

        attrs['_options'] = self._build_options(q_type, raw_options or [], (correct_answer or '').strip())
        return attrs

    def _changes_grading(self, attrs):
        if 'options' in attrs or 'correct_answer' in attrs:
            return True
        return any(
            field in attrs and attrs[field] != getattr(self.instance, field)
            for field in ('marks', 'question_type')
        )

    def _build_options(self, q_type, raw_options, correct_answer):
        if q_type == Question.QuestionType.FILL_BLANK:
            # The expected answer is stored as the single option
            if not correct_answer:
                raise serializers.ValidationError({"correct_answer": "Fill in the blank questions need an answer."})
            return [{'text': correct_answer, 'is_correct': True}]

        if q_type == Question.QuestionType.TRUE_FALSE and not raw_options:
            raw_options = ['True', 'False']

        options = []
        for raw in raw_options:
            if isinstance(raw, str):
                text = raw.strip()
                item = {'text': text, 'is_correct': bool(correct_answer) and text.lower() == correct_answer.lower()}
            else:
                option = OptionInputSerializer(data=raw)
                option.is_valid(raise_exception=True)
                item = dict(option.validated_data)
                item['text'] = item['text'].strip()
            if item['text']:
                options.append(item)

        if len(options) < 2:
            raise serializers.ValidationError({"options": "At least two options are required."})
        if sum(1 for option in options if option['is_correct']) != 1:
            raise serializers.ValidationError({"options": "Exactly one option must be marked correct."})
        return options

    def create(self, validated_data):
        options = validated_data.pop('_options')
        question = Question.objects.create(**validated_data)
        self._save_options(question, options)
        return question

    def update(self, instance, validated_data):
        options = validated_data.pop('_options')
        question = super().update(instance, validated_data)
        if options is not None:
            question.options.all().delete()
            self._save_options(question, options)
        return question

    def _save_options(self, question, options):
        Option.objects.bulk_create([
            Option(question=question, text=option['text'], is_correct=option['is_correct'], position=index)
            for index, option in enumerate(options)
        ])


# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)
    creator_name = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'exam_type', 'description', 'duration_minutes',
            'total_marks', 'pass_mark', 'status', 'start_at', 'end_at',
            'total_questions', 'creator_name', 'created_at',
        ]
        read_only_fields = ['total_marks', 'status', 'created_at']

    def get_creator_name(self, obj):
        if obj.created_by is None:
            return None
        return f"{obj.created_by.first_name} {obj.created_by.last_name}".strip()

    def validate_duration_minutes(self, value):
        if value < 1:
            raise serializers.ValidationError("Duration must be at least one minute.")
        return value

    def validate_pass_mark(self, value):
        if value > 100:
            raise serializers.ValidationError("Pass mark is a percentage between 0 and 100.")
        return value

    def validate(self, attrs):
        start_at = attrs.get('start_at', getattr(self.instance, 'start_at', None))
        end_at = attrs.get('end_at', getattr(self.instance, 'end_at', None))
        if start_at and end_at and end_at <= start_at:
            raise serializers.ValidationError({"end_at": "End time must be after the start time."})
        return attrs

    def create(self, validated_data):
        # Exams with a start time go straight to the scheduler
        if validated_data.get('start_at'):
            validated_data['status'] = Exam.Status.SCHEDULED
        else:
            validated_data['status'] = Exam.Status.DRAFT
        return super().create(validated_data)


class ExamListSerializer(serializers.ModelSerializer):
    """Student view of an exam: no questions, no answers."""
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'exam_type', 'description', 'duration_minutes', 'total_marks',
            'pass_mark', 'status', 'start_at', 'end_at', 'total_questions',
        ]


class ExamDetailSerializer(ExamSerializer):
    """Detailed view for teachers"""
    questions = serializers.SerializerMethodField()

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions']

    def get_questions(self, obj):
        links = obj.exam_questions.select_related('question').prefetch_related('question__options')
        return QuestionSerializer([link.question for link in links], many=True).data


class ExamStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Exam.Status.choices)


class QuestionIdsSerializer(serializers.Serializer):
    question_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
