"""
Catalog of Java platform types.

Stands in for reflective lookup of the JDK. Every catalog type is known by
name; the types code touches most also carry supertypes, fields and
member signatures (see ``PLATFORM_MEMBERS``). Member lists are partial:
a member missing from the catalog is synthesised by the resolution
context from the call site. ``java.lang.Object`` is spelled out in full,
because every hierarchy ends there.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

PLATFORM_PACKAGES: dict[str, tuple[str, ...]] = {
    "java.lang": (
        "AbstractMethodError", "Appendable", "ArithmeticException",
        "ArrayIndexOutOfBoundsException", "ArrayStoreException", "AssertionError",
        "AutoCloseable", "Boolean", "Byte", "CharSequence", "Character", "Class",
        "ClassCastException", "ClassLoader", "ClassNotFoundException",
        "CloneNotSupportedException", "Cloneable", "Comparable", "Deprecated",
        "Double", "Enum", "Error", "Exception", "Float", "FunctionalInterface",
        "IllegalAccessException", "IllegalArgumentException",
        "IllegalMonitorStateException", "IllegalStateException",
        "IndexOutOfBoundsException", "InstantiationException", "Integer",
        "InterruptedException", "Iterable", "LinkageError", "Long", "Math",
        "NegativeArraySizeException", "NoSuchFieldException", "NoSuchMethodException",
        "NullPointerException", "Number", "NumberFormatException", "Object",
        "OutOfMemoryError", "Override", "Package", "Process", "ProcessBuilder",
        "Readable", "Record", "ReflectiveOperationException", "Runnable", "Runtime",
        "RuntimeException", "SafeVarargs", "SecurityException", "Short",
        "StackOverflowError", "StackTraceElement", "StrictMath", "String",
        "StringBuffer", "StringBuilder", "StringIndexOutOfBoundsException",
        "SuppressWarnings", "System", "Thread", "ThreadGroup", "ThreadLocal",
        "Throwable", "TypeNotPresentException", "UnsupportedOperationException",
        "Void",
    ),
    "java.lang.annotation": (
        "Annotation", "Documented", "ElementType", "Inherited", "Native",
        "Repeatable", "Retention", "RetentionPolicy", "Target",
    ),
    "java.lang.reflect": (
        "AccessibleObject", "Array", "Constructor", "Executable", "Field",
        "GenericArrayType", "InvocationHandler", "InvocationTargetException",
        "Member", "Method", "Modifier", "Parameter", "ParameterizedType", "Proxy",
        "Type", "TypeVariable", "WildcardType",
    ),
    "java.util": (
        "AbstractList", "AbstractMap", "AbstractSet", "ArrayDeque", "ArrayList",
        "Arrays", "Base64", "BitSet", "Calendar", "Collection", "Collections",
        "Comparator", "ConcurrentModificationException", "Currency", "Date",
        "Deque", "Dictionary", "EnumMap", "EnumSet", "Enumeration", "EventListener",
        "EventObject", "Formatter", "GregorianCalendar", "HashMap", "HashSet",
        "Hashtable", "IdentityHashMap", "Iterator", "LinkedHashMap", "LinkedHashSet",
        "LinkedList", "List", "ListIterator", "Locale", "Map", "MissingResourceException",
        "NavigableMap", "NavigableSet", "NoSuchElementException", "Objects",
        "Optional", "OptionalDouble", "OptionalInt", "OptionalLong", "PriorityQueue",
        "Properties", "Queue", "Random", "ResourceBundle", "Scanner", "Set",
        "SortedMap", "SortedSet", "Spliterator", "Stack", "StringJoiner",
        "StringTokenizer", "TimeZone", "Timer", "TimerTask", "TreeMap", "TreeSet",
        "UUID", "Vector", "WeakHashMap",
    ),
    "java.util.function": (
        "BiConsumer", "BiFunction", "BiPredicate", "BinaryOperator",
        "BooleanSupplier", "Consumer", "DoubleFunction", "DoubleSupplier",
        "DoubleUnaryOperator", "Function", "IntBinaryOperator", "IntConsumer",
        "IntFunction", "IntPredicate", "IntSupplier", "IntUnaryOperator",
        "LongFunction", "LongSupplier", "Predicate", "Supplier", "ToDoubleFunction",
        "ToIntFunction", "ToLongFunction", "UnaryOperator",
    ),
    "java.util.stream": (
        "BaseStream", "Collector", "Collectors", "DoubleStream", "IntStream",
        "LongStream", "Stream", "StreamSupport",
    ),
    "java.util.concurrent": (
        "ArrayBlockingQueue", "BlockingQueue", "Callable", "CompletableFuture",
        "CompletionException", "CompletionStage", "ConcurrentHashMap",
        "ConcurrentLinkedQueue", "ConcurrentMap", "CopyOnWriteArrayList",
        "CountDownLatch", "CyclicBarrier", "ExecutionException", "Executor",
        "ExecutorService", "Executors", "ForkJoinPool", "Future",
        "LinkedBlockingQueue", "RejectedExecutionException",
        "ScheduledExecutorService", "ScheduledFuture", "Semaphore",
        "ThreadLocalRandom", "ThreadPoolExecutor", "TimeUnit", "TimeoutException",
    ),
    "java.util.concurrent.atomic": (
        "AtomicBoolean", "AtomicInteger", "AtomicLong", "AtomicReference",
        "LongAdder",
    ),
    "java.util.concurrent.locks": (
        "Condition", "Lock", "ReadWriteLock", "ReentrantLock",
        "ReentrantReadWriteLock", "StampedLock",
    ),
    "java.util.regex": ("MatchResult", "Matcher", "Pattern", "PatternSyntaxException"),
    "java.util.logging": ("Handler", "Level", "LogRecord", "Logger"),
    "java.util.zip": (
        "CRC32", "GZIPInputStream", "GZIPOutputStream", "ZipEntry", "ZipFile",
        "ZipInputStream", "ZipOutputStream",
    ),
    "java.io": (
        "BufferedInputStream", "BufferedOutputStream", "BufferedReader",
        "BufferedWriter", "ByteArrayInputStream", "ByteArrayOutputStream",
        "Closeable", "DataInputStream", "DataOutputStream", "EOFException", "File",
        "FileInputStream", "FileNotFoundException", "FileOutputStream",
        "FileReader", "FileWriter", "Flushable", "IOException", "InputStream",
        "InputStreamReader", "ObjectInputStream", "ObjectOutputStream",
        "OutputStream", "OutputStreamWriter", "PrintStream", "PrintWriter",
        "Reader", "Serializable", "StringReader", "StringWriter",
        "UncheckedIOException", "UnsupportedEncodingException", "Writer",
    ),
    "java.nio": ("Buffer", "ByteBuffer", "ByteOrder", "CharBuffer"),
    "java.nio.charset": ("Charset", "StandardCharsets"),
    "java.nio.file": (
        "DirectoryStream", "FileAlreadyExistsException", "FileSystem",
        "FileSystems", "FileVisitResult", "Files", "LinkOption",
        "NoSuchFileException", "Path", "PathMatcher", "Paths",
        "SimpleFileVisitor", "StandardCopyOption", "StandardOpenOption",
    ),
    "java.math": ("BigDecimal", "BigInteger", "MathContext", "RoundingMode"),
    "java.net": (
        "HttpURLConnection", "InetAddress", "InetSocketAddress",
        "MalformedURLException", "ServerSocket", "Socket", "SocketException",
        "URI", "URISyntaxException", "URL", "URLConnection", "URLDecoder",
        "URLEncoder", "UnknownHostException",
    ),
    "java.net.http": ("HttpClient", "HttpHeaders", "HttpRequest", "HttpResponse"),
    "java.sql": (
        "Blob", "CallableStatement", "Clob", "Connection", "DatabaseMetaData",
        "Date", "DriverManager", "PreparedStatement", "ResultSet",
        "ResultSetMetaData", "SQLException", "Statement", "Time", "Timestamp",
        "Types",
    ),
    "java.text": (
        "DateFormat", "DecimalFormat", "MessageFormat", "NumberFormat",
        "ParseException", "SimpleDateFormat",
    ),
    "java.time": (
        "Clock", "DateTimeException", "DayOfWeek", "Duration", "Instant",
        "LocalDate", "LocalDateTime", "LocalTime", "Month", "OffsetDateTime",
        "Period", "Year", "YearMonth", "ZoneId", "ZoneOffset", "ZonedDateTime",
    ),
    "java.time.format": ("DateTimeFormatter", "DateTimeParseException", "FormatStyle"),
    "java.time.temporal": ("ChronoField", "ChronoUnit", "Temporal", "TemporalUnit"),
}

# (name, parameter types, return type, static)
OBJECT_MEMBERS: tuple[tuple[str, tuple[str, ...], str, bool], ...] = (
    ("clone", (), "java.lang.Object", False),
    ("equals", ("java.lang.Object",), "boolean", False),
    ("finalize", (), "void", False),
    ("getClass", (), "java.lang.Class", False),
    ("hashCode", (), "int", False),
    ("notify", (), "void", False),
    ("notifyAll", (), "void", False),
    ("toString", (), "java.lang.String", False),
    ("wait", (), "void", False),
    ("wait", ("long",), "void", False),
    ("wait", ("long", "int"), "void", False),
)

# Kinds that differ from the default "class"
PLATFORM_KINDS: dict[str, str] = {
    "java.lang.Deprecated": "annotation",
    "java.lang.FunctionalInterface": "annotation",
    "java.lang.Override": "annotation",
    "java.lang.SafeVarargs": "annotation",
    "java.lang.SuppressWarnings": "annotation",
    "java.lang.annotation.Documented": "annotation",
    "java.lang.annotation.Inherited": "annotation",
    "java.lang.annotation.Native": "annotation",
    "java.lang.annotation.Repeatable": "annotation",
    "java.lang.annotation.Retention": "annotation",
    "java.lang.annotation.Target": "annotation",
    "java.lang.annotation.ElementType": "enum",
    "java.lang.annotation.RetentionPolicy": "enum",
    "java.util.concurrent.TimeUnit": "enum",
    "java.time.DayOfWeek": "enum",
    "java.time.Month": "enum",
    "java.math.RoundingMode": "enum",
}


@dataclass(frozen=True)
class PlatformMember:
    """One catalogued method or constructor; types are fully qualified."""

    name: str
    parameter_types: tuple[str, ...] = ()
    return_type: str | None = None
    is_static: bool = False
    is_varargs: bool = False
    type_parameters: tuple[str, ...] = ()


@dataclass
class PlatformType:
    """Member data for one catalogued type. Lists are partial."""

    kind: str = "class"
    type_parameters: tuple[str, ...] = ()
    superclass: str | None = None
    supertypes: tuple[str, ...] = ()
    fields: dict[str, str] = field(default_factory=dict)
    constructors: list[PlatformMember] = field(default_factory=list)
    methods: list[PlatformMember] = field(default_factory=list)
    member_types: dict[str, str] = field(default_factory=dict)


_THROWABLE_CONSTRUCTORS = ("()", "(String)", "(String,Throwable)", "(Throwable)")

# Signatures use simple names; they are qualified against PLATFORM_PACKAGES
# on load. Overloads are listed in the order an unqualified method reference
# should prefer them.
_CATALOG: dict[str, dict] = {
    "java.lang.CharSequence": {
        "kind": "interface",
        "methods": (
            "int length()",
            "char charAt(int)",
            "boolean isEmpty()",
            "CharSequence subSequence(int,int)",
            "String toString()",
            "IntStream chars()",
        ),
    },
    "java.lang.Comparable": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": ("int compareTo(T)",),
    },
    "java.lang.Iterable": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": (
            "Iterator<T> iterator()",
            "void forEach(Consumer<? super T>)",
            "Spliterator<T> spliterator()",
        ),
    },
    "java.lang.AutoCloseable": {"kind": "interface", "methods": ("void close()",)},
    "java.lang.Runnable": {"kind": "interface", "methods": ("void run()",)},
    "java.lang.String": {
        "supertypes": ("CharSequence", "Comparable<String>"),
        "constructors": ("()", "(String)", "(char[])", "(byte[])", "(byte[],Charset)", "(StringBuilder)"),
        "methods": (
            "int length()",
            "char charAt(int)",
            "boolean isEmpty()",
            "boolean isBlank()",
            "String trim()",
            "String strip()",
            "String toUpperCase()",
            "String toLowerCase()",
            "String substring(int)",
            "String substring(int,int)",
            "int indexOf(String)",
            "int indexOf(int)",
            "int lastIndexOf(String)",
            "boolean contains(CharSequence)",
            "boolean startsWith(String)",
            "boolean endsWith(String)",
            "boolean equals(Object)",
            "boolean equalsIgnoreCase(String)",
            "int compareTo(String)",
            "String replace(CharSequence,CharSequence)",
            "String replace(char,char)",
            "String replaceAll(String,String)",
            "String[] split(String)",
            "String concat(String)",
            "boolean matches(String)",
            "char[] toCharArray()",
            "byte[] getBytes()",
            "String repeat(int)",
            "IntStream chars()",
            "String intern()",
            "String toString()",
            "int hashCode()",
            "static String valueOf(Object)",
            "static String valueOf(int)",
            "static String valueOf(long)",
            "static String valueOf(char)",
            "static String valueOf(boolean)",
            "static String valueOf(double)",
            "static String format(String,Object...)",
            "static String join(CharSequence,CharSequence...)",
            "static String join(CharSequence,Iterable<? extends CharSequence>)",
        ),
    },
    "java.lang.StringBuilder": {
        "supertypes": ("CharSequence", "Appendable"),
        "constructors": ("()", "(int)", "(String)", "(CharSequence)"),
        "methods": (
            "StringBuilder append(String)",
            "StringBuilder append(Object)",
            "StringBuilder append(CharSequence)",
            "StringBuilder append(char)",
            "StringBuilder append(int)",
            "StringBuilder append(long)",
            "StringBuilder append(boolean)",
            "StringBuilder append(double)",
            "StringBuilder append(char[])",
            "StringBuilder insert(int,String)",
            "StringBuilder reverse()",
            "StringBuilder delete(int,int)",
            "StringBuilder deleteCharAt(int)",
            "StringBuilder replace(int,int,String)",
            "void setLength(int)",
            "int length()",
            "char charAt(int)",
            "int indexOf(String)",
            "String substring(int)",
            "String substring(int,int)",
            "String toString()",
        ),
    },
    "java.lang.System": {
        "fields": {"out": "PrintStream", "err": "PrintStream", "in": "InputStream"},
        "methods": (
            "static long currentTimeMillis()",
            "static long nanoTime()",
            "static void exit(int)",
            "static String getProperty(String)",
            "static String getProperty(String,String)",
            "static String getenv(String)",
            "static String lineSeparator()",
            "static void arraycopy(Object,int,Object,int,int)",
            "static int identityHashCode(Object)",
            "static void gc()",
        ),
    },
    "java.lang.Number": {
        "methods": (
            "int intValue()",
            "long longValue()",
            "double doubleValue()",
            "float floatValue()",
            "short shortValue()",
            "byte byteValue()",
        ),
    },
    "java.lang.Integer": {
        "superclass": "Number",
        "supertypes": ("Number", "Comparable<Integer>"),
        "fields": {"MAX_VALUE": "int", "MIN_VALUE": "int"},
        "constructors": ("(int)", "(String)"),
        "methods": (
            "int intValue()",
            "String toString()",
            "int compareTo(Integer)",
            "boolean equals(Object)",
            "int hashCode()",
            "static int parseInt(String)",
            "static int parseInt(String,int)",
            "static Integer valueOf(int)",
            "static Integer valueOf(String)",
            "static String toString(int)",
            "static int compare(int,int)",
            "static int max(int,int)",
            "static int min(int,int)",
            "static int sum(int,int)",
            "static String toHexString(int)",
            "static String toBinaryString(int)",
        ),
    },
    "java.lang.Long": {
        "superclass": "Number",
        "supertypes": ("Number", "Comparable<Long>"),
        "fields": {"MAX_VALUE": "long", "MIN_VALUE": "long"},
        "constructors": ("(long)", "(String)"),
        "methods": (
            "long longValue()",
            "String toString()",
            "int compareTo(Long)",
            "static long parseLong(String)",
            "static Long valueOf(long)",
            "static Long valueOf(String)",
            "static String toString(long)",
            "static int compare(long,long)",
        ),
    },
    "java.lang.Double": {
        "superclass": "Number",
        "supertypes": ("Number", "Comparable<Double>"),
        "fields": {"MAX_VALUE": "double", "MIN_VALUE": "double", "NaN": "double"},
        "constructors": ("(double)", "(String)"),
        "methods": (
            "double doubleValue()",
            "boolean isNaN()",
            "String toString()",
            "int compareTo(Double)",
            "static double parseDouble(String)",
            "static Double valueOf(double)",
            "static Double valueOf(String)",
            "static String toString(double)",
            "static int compare(double,double)",
            "static boolean isNaN(double)",
        ),
    },
    "java.lang.Boolean": {
        "supertypes": ("Comparable<Boolean>",),
        "fields": {"TRUE": "Boolean", "FALSE": "Boolean"},
        "constructors": ("(boolean)",),
        "methods": (
            "boolean booleanValue()",
            "String toString()",
            "static boolean parseBoolean(String)",
            "static Boolean valueOf(boolean)",
            "static Boolean valueOf(String)",
            "static String toString(boolean)",
        ),
    },
    "java.lang.Character": {
        "supertypes": ("Comparable<Character>",),
        "methods": (
            "char charValue()",
            "static boolean isDigit(char)",
            "static boolean isLetter(char)",
            "static boolean isLetterOrDigit(char)",
            "static boolean isWhitespace(char)",
            "static boolean isUpperCase(char)",
            "static char toUpperCase(char)",
            "static char toLowerCase(char)",
            "static Character valueOf(char)",
        ),
    },
    "java.lang.Throwable": {
        "constructors": _THROWABLE_CONSTRUCTORS,
        "methods": (
            "String getMessage()",
            "String getLocalizedMessage()",
            "Throwable getCause()",
            "void printStackTrace()",
            "StackTraceElement[] getStackTrace()",
            "void addSuppressed(Throwable)",
        ),
    },
    "java.lang.Exception": {
        "superclass": "Throwable",
        "supertypes": ("Throwable",),
        "constructors": _THROWABLE_CONSTRUCTORS,
    },
    "java.lang.RuntimeException": {
        "superclass": "Exception",
        "supertypes": ("Exception",),
        "constructors": _THROWABLE_CONSTRUCTORS,
    },
    "java.lang.IllegalArgumentException": {
        "superclass": "RuntimeException",
        "supertypes": ("RuntimeException",),
        "constructors": _THROWABLE_CONSTRUCTORS,
    },
    "java.lang.IllegalStateException": {
        "superclass": "RuntimeException",
        "supertypes": ("RuntimeException",),
        "constructors": _THROWABLE_CONSTRUCTORS,
    },
    "java.io.PrintStream": {
        "superclass": "OutputStream",
        "supertypes": ("OutputStream", "Appendable", "Closeable"),
        "constructors": ("(OutputStream)", "(OutputStream,boolean)", "(String)"),
        "methods": (
            "void println(String)",
            "void println(Object)",
            "void println()",
            "void println(int)",
            "void println(long)",
            "void println(double)",
            "void println(float)",
            "void println(char)",
            "void println(boolean)",
            "void println(char[])",
            "void print(String)",
            "void print(Object)",
            "void print(int)",
            "void print(long)",
            "void print(double)",
            "void print(char)",
            "void print(boolean)",
            "PrintStream printf(String,Object...)",
            "PrintStream format(String,Object...)",
            "void write(int)",
            "void flush()",
            "void close()",
        ),
    },
    "java.util.Iterator": {
        "kind": "interface",
        "type_parameters": ("E",),
        "methods": (
            "boolean hasNext()",
            "E next()",
            "void remove()",
            "void forEachRemaining(Consumer<? super E>)",
        ),
    },
    "java.util.Collection": {
        "kind": "interface",
        "type_parameters": ("E",),
        "supertypes": ("Iterable<E>",),
        "methods": (
            "int size()",
            "boolean isEmpty()",
            "boolean contains(Object)",
            "boolean add(E)",
            "boolean remove(Object)",
            "boolean addAll(Collection<? extends E>)",
            "boolean removeAll(Collection<?>)",
            "boolean retainAll(Collection<?>)",
            "boolean containsAll(Collection<?>)",
            "boolean removeIf(Predicate<? super E>)",
            "void clear()",
            "Object[] toArray()",
            "<T> T[] toArray(T[])",
            "Stream<E> stream()",
            "Stream<E> parallelStream()",
        ),
    },
    "java.util.List": {
        "kind": "interface",
        "type_parameters": ("E",),
        "supertypes": ("Collection<E>",),
        "methods": (
            "E get(int)",
            "E set(int,E)",
            "boolean add(E)",
            "void add(int,E)",
            "E remove(int)",
            "boolean remove(Object)",
            "int indexOf(Object)",
            "int lastIndexOf(Object)",
            "List<E> subList(int,int)",
            "void sort(Comparator<? super E>)",
            "void replaceAll(UnaryOperator<E>)",
            "ListIterator<E> listIterator()",
            "static <T> List<T> of(T...)",
            "static <T> List<T> copyOf(Collection<? extends T>)",
        ),
    },
    "java.util.ArrayList": {
        "type_parameters": ("E",),
        "supertypes": ("List<E>",),
        "constructors": ("()", "(int)", "(Collection<? extends E>)"),
        "methods": ("void ensureCapacity(int)", "void trimToSize()"),
    },
    "java.util.LinkedList": {
        "type_parameters": ("E",),
        "supertypes": ("List<E>", "Deque<E>"),
        "constructors": ("()", "(Collection<? extends E>)"),
        "methods": (
            "void addFirst(E)",
            "void addLast(E)",
            "E getFirst()",
            "E getLast()",
            "E removeFirst()",
            "E removeLast()",
            "E peek()",
            "E poll()",
            "void push(E)",
            "E pop()",
        ),
    },
    "java.util.Set": {
        "kind": "interface",
        "type_parameters": ("E",),
        "supertypes": ("Collection<E>",),
        "methods": (
            "static <T> Set<T> of(T...)",
            "static <T> Set<T> copyOf(Collection<? extends T>)",
        ),
    },
    "java.util.HashSet": {
        "type_parameters": ("E",),
        "supertypes": ("Set<E>",),
        "constructors": ("()", "(int)", "(Collection<? extends E>)"),
    },
    "java.util.LinkedHashSet": {
        "type_parameters": ("E",),
        "supertypes": ("HashSet<E>", "Set<E>"),
        "superclass": "HashSet<E>",
        "constructors": ("()", "(int)", "(Collection<? extends E>)"),
    },
    "java.util.TreeSet": {
        "type_parameters": ("E",),
        "supertypes": ("Set<E>",),
        "constructors": ("()", "(Comparator<? super E>)", "(Collection<? extends E>)"),
        "methods": ("E first()", "E last()"),
    },
    "java.util.Map": {
        "kind": "interface",
        "type_parameters": ("K", "V"),
        "member_types": {"Entry": "java.util.Map.Entry"},
        "methods": (
            "V get(Object)",
            "V put(K,V)",
            "V getOrDefault(Object,V)",
            "V remove(Object)",
            "boolean containsKey(Object)",
            "boolean containsValue(Object)",
            "int size()",
            "boolean isEmpty()",
            "void clear()",
            "Set<K> keySet()",
            "Collection<V> values()",
            "Set<Map.Entry<K,V>> entrySet()",
            "void putAll(Map<? extends K,? extends V>)",
            "V putIfAbsent(K,V)",
            "V computeIfAbsent(K,Function<? super K,? extends V>)",
            "V computeIfPresent(K,BiFunction<? super K,? super V,? extends V>)",
            "V compute(K,BiFunction<? super K,? super V,? extends V>)",
            "V merge(K,V,BiFunction<? super V,? super V,? extends V>)",
            "void forEach(BiConsumer<? super K,? super V>)",
            "static <A,B> Map<A,B> of()",
            "static <A,B> Map<A,B> of(A,B)",
            "static <A,B> Map<A,B> of(A,B,A,B)",
            "static <A,B> Map.Entry<A,B> entry(A,B)",
        ),
    },
    "java.util.Map.Entry": {
        "kind": "interface",
        "type_parameters": ("K", "V"),
        "methods": ("K getKey()", "V getValue()", "V setValue(V)"),
    },
    "java.util.HashMap": {
        "type_parameters": ("K", "V"),
        "supertypes": ("Map<K,V>",),
        "constructors": ("()", "(int)", "(Map<? extends K,? extends V>)"),
    },
    "java.util.LinkedHashMap": {
        "type_parameters": ("K", "V"),
        "superclass": "HashMap<K,V>",
        "supertypes": ("HashMap<K,V>", "Map<K,V>"),
        "constructors": ("()", "(int)", "(Map<? extends K,? extends V>)"),
    },
    "java.util.TreeMap": {
        "type_parameters": ("K", "V"),
        "supertypes": ("Map<K,V>",),
        "constructors": ("()", "(Comparator<? super K>)", "(Map<? extends K,? extends V>)"),
        "methods": ("K firstKey()", "K lastKey()"),
    },
    "java.util.Optional": {
        "type_parameters": ("T",),
        "methods": (
            "T get()",
            "boolean isPresent()",
            "boolean isEmpty()",
            "T orElse(T)",
            "T orElseGet(Supplier<? extends T>)",
            "T orElseThrow()",
            "<X> T orElseThrow(Supplier<? extends X>)",
            "void ifPresent(Consumer<? super T>)",
            "<U> Optional<U> map(Function<? super T,? extends U>)",
            "<U> Optional<U> flatMap(Function<? super T,? extends Optional<? extends U>>)",
            "Optional<T> filter(Predicate<? super T>)",
            "Stream<T> stream()",
            "static <U> Optional<U> of(U)",
            "static <U> Optional<U> ofNullable(U)",
            "static <U> Optional<U> empty()",
        ),
    },
    "java.util.Objects": {
        "methods": (
            "static boolean equals(Object,Object)",
            "static int hash(Object...)",
            "static int hashCode(Object)",
            "static String toString(Object)",
            "static String toString(Object,String)",
            "static boolean isNull(Object)",
            "static boolean nonNull(Object)",
            "static <T> T requireNonNull(T)",
            "static <T> T requireNonNull(T,String)",
            "static <T> T requireNonNullElse(T,T)",
        ),
    },
    "java.util.Arrays": {
        "methods": (
            "static <T> List<T> asList(T...)",
            "static String toString(Object[])",
            "static String toString(int[])",
            "static void sort(Object[])",
            "static void sort(int[])",
            "static <T> void sort(T[],Comparator<? super T>)",
            "static <T> Stream<T> stream(T[])",
            "static void fill(Object[],Object)",
            "static boolean equals(Object[],Object[])",
            "static int hashCode(Object[])",
            "static <T> T[] copyOf(T[],int)",
            "static int[] copyOf(int[],int)",
        ),
    },
    "java.util.Collections": {
        "methods": (
            "static <T> List<T> emptyList()",
            "static <T> Set<T> emptySet()",
            "static <K,V> Map<K,V> emptyMap()",
            "static <T> List<T> singletonList(T)",
            "static <T> Set<T> singleton(T)",
            "static <T> List<T> unmodifiableList(List<? extends T>)",
            "static <T> Set<T> unmodifiableSet(Set<? extends T>)",
            "static <K,V> Map<K,V> unmodifiableMap(Map<? extends K,? extends V>)",
            "static <T> void sort(List<T>)",
            "static <T> void sort(List<T>,Comparator<? super T>)",
            "static void reverse(List<?>)",
            "static void shuffle(List<?>)",
            "static <T> T max(Collection<? extends T>)",
            "static <T> T min(Collection<? extends T>)",
        ),
    },
    "java.util.Comparator": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": (
            "int compare(T,T)",
            "Comparator<T> reversed()",
            "Comparator<T> thenComparing(Comparator<? super T>)",
            "static <A,U> Comparator<A> comparing(Function<? super A,? extends U>)",
            "static <A> Comparator<A> comparingInt(ToIntFunction<? super A>)",
            "static <A> Comparator<A> naturalOrder()",
            "static <A> Comparator<A> reverseOrder()",
        ),
    },
    "java.util.function.Function": {
        "kind": "interface",
        "type_parameters": ("T", "R"),
        "methods": (
            "R apply(T)",
            "<V> Function<T,V> andThen(Function<? super R,? extends V>)",
            "<V> Function<V,R> compose(Function<? super V,? extends T>)",
            "static <A> Function<A,A> identity()",
        ),
    },
    "java.util.function.BiFunction": {
        "kind": "interface",
        "type_parameters": ("T", "U", "R"),
        "methods": ("R apply(T,U)",),
    },
    "java.util.function.UnaryOperator": {
        "kind": "interface",
        "type_parameters": ("T",),
        "supertypes": ("Function<T,T>",),
        "methods": ("static <A> UnaryOperator<A> identity()",),
    },
    "java.util.function.BinaryOperator": {
        "kind": "interface",
        "type_parameters": ("T",),
        "supertypes": ("BiFunction<T,T,T>",),
    },
    "java.util.function.Consumer": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": ("void accept(T)", "Consumer<T> andThen(Consumer<? super T>)"),
    },
    "java.util.function.BiConsumer": {
        "kind": "interface",
        "type_parameters": ("T", "U"),
        "methods": ("void accept(T,U)",),
    },
    "java.util.function.Supplier": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": ("T get()",),
    },
    "java.util.function.Predicate": {
        "kind": "interface",
        "type_parameters": ("T",),
        "methods": (
            "boolean test(T)",
            "Predicate<T> and(Predicate<? super T>)",
            "Predicate<T> or(Predicate<? super T>)",
            "Predicate<T> negate()",
            "static <A> Predicate<A> not(Predicate<? super A>)",
            "static <A> Predicate<A> isEqual(Object)",
        ),
    },
    "java.util.concurrent.Callable": {
        "kind": "interface",
        "type_parameters": ("V",),
        "methods": ("V call()",),
    },
    "java.util.stream.Stream": {
        "kind": "interface",
        "type_parameters": ("T",),
        "supertypes": ("AutoCloseable",),
        "methods": (
            "Stream<T> filter(Predicate<? super T>)",
            "<R> Stream<R> map(Function<? super T,? extends R>)",
            "<R> Stream<R> flatMap(Function<? super T,? extends Stream<? extends R>>)",
            "IntStream mapToInt(ToIntFunction<? super T>)",
            "LongStream mapToLong(ToLongFunction<? super T>)",
            "DoubleStream mapToDouble(ToDoubleFunction<? super T>)",
            "Stream<T> distinct()",
            "Stream<T> sorted()",
            "Stream<T> sorted(Comparator<? super T>)",
            "Stream<T> peek(Consumer<? super T>)",
            "Stream<T> limit(long)",
            "Stream<T> skip(long)",
            "void forEach(Consumer<? super T>)",
            "void forEachOrdered(Consumer<? super T>)",
            "Object[] toArray()",
            "T reduce(T,BinaryOperator<T>)",
            "Optional<T> reduce(BinaryOperator<T>)",
            "<R,A> R collect(Collector<? super T,A,R>)",
            "List<T> toList()",
            "Optional<T> min(Comparator<? super T>)",
            "Optional<T> max(Comparator<? super T>)",
            "long count()",
            "boolean anyMatch(Predicate<? super T>)",
            "boolean allMatch(Predicate<? super T>)",
            "boolean noneMatch(Predicate<? super T>)",
            "Optional<T> findFirst()",
            "Optional<T> findAny()",
            "Iterator<T> iterator()",
            "static <A> Stream<A> of(A...)",
            "static <A> Stream<A> empty()",
            "static <A> Stream<A> concat(Stream<? extends A>,Stream<? extends A>)",
        ),
    },
    "java.util.stream.Collector": {
        "kind": "interface",
        "type_parameters": ("T", "A", "R"),
    },
    "java.util.stream.Collectors": {
        "methods": (
            "static <T> Collector<T,?,List<T>> toList()",
            "static <T> Collector<T,?,Set<T>> toSet()",
            "static Collector<CharSequence,?,String> joining()",
            "static Collector<CharSequence,?,String> joining(CharSequence)",
            "static Collector<CharSequence,?,String> joining(CharSequence,CharSequence,CharSequence)",
            "static <T,K> Collector<T,?,Map<K,List<T>>> groupingBy(Function<? super T,? extends K>)",
            "static <T,K,U> Collector<T,?,Map<K,U>> toMap(Function<? super T,? extends K>,Function<? super T,? extends U>)",
            "static <T> Collector<T,?,Long> counting()",
        ),
    },
}

_SIGNATURE = re.compile(
    r"^(?P<static>static\s+)?(?:<(?P<variables>[^>]*)>\s+)?(?P<returns>.+?)\s+(?P<name>\w+)\((?P<params>.*)\)$"
)
_SIMPLE_TYPE = re.compile(r"(?<![\w.])([A-Z]\w*)")


def _simple_names() -> dict[str, str]:
    names: dict[str, str] = {}
    for package, simple_names in PLATFORM_PACKAGES.items():
        for simple in simple_names:
            names.setdefault(simple, f"{package}.{simple}")
    return names


_QUALIFIED_NAMES = _simple_names()


def _qualify(type_text: str) -> str:
    return _SIMPLE_TYPE.sub(lambda m: _QUALIFIED_NAMES.get(m.group(1), m.group(1)), type_text.strip())


def _split_parameters(text: str) -> list[str]:
    params = []
    depth = 0
    begin = 0
    for i, ch in enumerate(text):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == "," and depth == 0:
            params.append(text[begin:i])
            begin = i + 1
    params.append(text[begin:])
    return [_qualify(p) for p in params if p.strip()]


def parse_signature(signature: str, constructor_of: str | None = None) -> PlatformMember:
    """
    Parse ``static <T> List<T> of(T...)`` or, for constructors, ``(int)``.
    """
    if constructor_of is not None:
        params = _split_parameters(signature.strip()[1:-1])
        return PlatformMember(
            name=constructor_of.rsplit(".", 1)[-1],
            parameter_types=tuple(params),
            is_varargs=bool(params) and params[-1].endswith("..."),
        )

    match = _SIGNATURE.match(signature.strip())
    if match is None:
        raise ValueError(f"Malformed platform signature: {signature!r}")
    params = _split_parameters(match.group("params"))
    variables = match.group("variables")
    return PlatformMember(
        name=match.group("name"),
        parameter_types=tuple(params),
        return_type=_qualify(match.group("returns")),
        is_static=match.group("static") is not None,
        is_varargs=bool(params) and params[-1].endswith("..."),
        type_parameters=tuple(v.strip() for v in variables.split(",")) if variables else (),
    )


def _load(qualified_name: str, entry: dict) -> PlatformType:
    superclass = entry.get("superclass")
    return PlatformType(
        kind=entry.get("kind", PLATFORM_KINDS.get(qualified_name, "class")),
        type_parameters=tuple(entry.get("type_parameters", ())),
        superclass=_qualify(superclass) if superclass else None,
        supertypes=tuple(_qualify(s) for s in entry.get("supertypes", ())),
        fields={name: _qualify(t) for name, t in entry.get("fields", {}).items()},
        constructors=[parse_signature(s, constructor_of=qualified_name) for s in entry.get("constructors", ())],
        methods=[parse_signature(s) for s in entry.get("methods", ())],
        member_types=dict(entry.get("member_types", {})),
    )


PLATFORM_MEMBERS: dict[str, PlatformType] = {name: _load(name, entry) for name, entry in _CATALOG.items()}


def platform_type_names() -> set[str]:
    """Every qualified name in the catalog."""
    names = {f"{package}.{name}" for package, names in PLATFORM_PACKAGES.items() for name in names}
    return names | set(PLATFORM_MEMBERS)
